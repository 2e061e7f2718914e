from decimal import Decimal
from typing import Any, Dict, List

from boto3.dynamodb.types import TypeDeserializer, TypeSerializer
from pydantic import BaseModel, Field

# Attribute names of a product item in DynamoDB
ID_ATTRIBUTE = "id"
NAME_ATTRIBUTE = "Name"
PRICE_ATTRIBUTE = "Price"

_serializer = TypeSerializer()
_deserializer = TypeDeserializer()


class Product(BaseModel):
    id: int = Field(ge=0)
    name: str
    price: float = Field(ge=0, allow_inf_nan=False)

    def __str__(self) -> str:
        return f"<(Id: {self.id}) {{{self.name}}} @ {self.price}>"

    def to_item(self) -> Dict[str, Dict[str, Any]]:
        """Marshal the product into a DynamoDB attribute map."""
        # DynamoDB refuses binary floats, numbers travel as Decimal
        values = {
            ID_ATTRIBUTE: self.id,
            NAME_ATTRIBUTE: self.name,
            PRICE_ATTRIBUTE: Decimal(str(self.price)),
        }
        return {key: _serializer.serialize(value) for key, value in values.items()}

    @classmethod
    def from_item(cls, item: Dict[str, Dict[str, Any]]) -> "Product":
        """Unmarshal a DynamoDB attribute map."""
        values = {key: _deserializer.deserialize(value) for key, value in item.items()}
        return cls(
            id=int(values[ID_ATTRIBUTE]),
            name=values[NAME_ATTRIBUTE],
            price=float(values[PRICE_ATTRIBUTE]),
        )


# Demonstration data loaded by both backends on first start
SEED_PRODUCTS: List[Product] = [
    Product(id=1, name="Apple", price=0.98),
    Product(id=2, name="Orange", price=0.98),
    Product(id=3, name="Bananas", price=2.25),
    Product(id=4, name="Frozen Pizza", price=4.99),
]
