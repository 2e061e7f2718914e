"""DynamoDB backed catalog.

Products live in a single table whose partition key is the numeric product id.
There is no sort key and no secondary index, so ordering by price cannot be
delegated to DynamoDB: list_products scans the whole table and sorts in memory.
"""

from typing import Any, Dict, List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from loguru import logger

from errors import NotFoundError, StorageError
from models import ID_ATTRIBUTE, NAME_ATTRIBUTE, PRICE_ATTRIBUTE, SEED_PRODUCTS, Product
from storage import ProductStorage, sort_by_price

AWS_ERRORS = (BotoCoreError, ClientError)


class DynamoProductStorage(ProductStorage):

    def __init__(
        self,
        table_name: str = "Products",
        region: str = "us-west-2",
        endpoint_url: Optional[str] = "http://localhost:8080",
        aws_access_key_id: Optional[str] = None,
        aws_secret_access_key: Optional[str] = None,
        client: Any = None,
    ):
        self.table_name = table_name
        self.region = region
        self.endpoint_url = endpoint_url
        self._credentials = {
            "aws_access_key_id": aws_access_key_id,
            "aws_secret_access_key": aws_secret_access_key,
        }
        self._client = client

    @property
    def client(self):
        if self._client is None:
            raise StorageError("DynamoDB storage used before initialize()")
        return self._client

    # --- lifecycle -------------------------------------------------------

    def initialize(self) -> None:
        """Connect, then create and seed the table unless it already exists."""
        if self._client is None:
            try:
                self._client = boto3.client(
                    "dynamodb",
                    region_name=self.region,
                    endpoint_url=self.endpoint_url,
                    **{k: v for k, v in self._credentials.items() if v},
                )
            except AWS_ERRORS as e:
                raise StorageError("Could not create DynamoDB client", e) from e

        tables = self.list_tables()
        logger.info(f"Tables: {', '.join(tables) or '(none)'}")

        if self.table_name in tables:
            logger.info(f"Table '{self.table_name}' already exists!")
            return

        self.create_table()
        self.seed()

    def cleanup(self) -> None:
        logger.info("Cleaning up...")
        self._client = None

    def list_tables(self) -> List[str]:
        names: List[str] = []
        kwargs: Dict[str, Any] = {}
        try:
            while True:
                result = self.client.list_tables(**kwargs)
                names.extend(result.get("TableNames", []))
                last = result.get("LastEvaluatedTableName")
                if not last:
                    return names
                kwargs["ExclusiveStartTableName"] = last
        except AWS_ERRORS as e:
            raise StorageError("ListTables failed", e) from e

    def create_table(self) -> None:
        logger.info(f"Creating table '{self.table_name}'...")
        try:
            self.client.create_table(
                TableName=self.table_name,
                KeySchema=[{"AttributeName": ID_ATTRIBUTE, "KeyType": "HASH"}],
                AttributeDefinitions=[{"AttributeName": ID_ATTRIBUTE, "AttributeType": "N"}],
                ProvisionedThroughput={"ReadCapacityUnits": 10, "WriteCapacityUnits": 10},
            )
            self.client.get_waiter("table_exists").wait(TableName=self.table_name)
        except AWS_ERRORS as e:
            raise StorageError(f"CreateTable '{self.table_name}' failed", e) from e
        logger.info(f"Table '{self.table_name}' successfully created!")

    def seed(self) -> None:
        for product in SEED_PRODUCTS:
            try:
                self.add_product(product)
            except StorageError as e:
                raise StorageError("Error entering test data", e) from e
        logger.info(f"Seeded '{self.table_name}' with {len(SEED_PRODUCTS)} products")

    # --- catalog operations ----------------------------------------------

    def list_products(self) -> List[Product]:
        items: List[Dict[str, Any]] = []
        kwargs: Dict[str, Any] = {"TableName": self.table_name}
        try:
            while True:
                result = self.client.scan(**kwargs)
                items.extend(result.get("Items", []))
                last_key = result.get("LastEvaluatedKey")
                if not last_key:
                    break
                kwargs["ExclusiveStartKey"] = last_key
        except AWS_ERRORS as e:
            raise StorageError("Scan of all products failed", e) from e

        try:
            products = [Product.from_item(item) for item in items]
        except (KeyError, TypeError, ValueError) as e:
            raise StorageError("Unmarshalling products failed", e) from e
        return sort_by_price(products)

    def add_product(self, product: Product) -> None:
        try:
            self.client.put_item(TableName=self.table_name, Item=self._marshal(product))
        except AWS_ERRORS as e:
            raise StorageError(f"Product {product} could not be added", e) from e

    def get_product(self, product_id: int) -> Product:
        try:
            result = self.client.query(
                TableName=self.table_name,
                ScanIndexForward=False,
                KeyConditionExpression="id = :id",
                ExpressionAttributeValues={":id": {"N": str(product_id)}},
            )
        except AWS_ERRORS as e:
            raise StorageError(f"Query for product <{product_id}> failed", e) from e

        # The id is the partition key, so a hit is a single item
        items = result.get("Items", [])
        if not items:
            raise NotFoundError(product_id)
        try:
            return Product.from_item(items[0])
        except (KeyError, TypeError, ValueError) as e:
            raise StorageError(f"Unmarshalling product <{product_id}> failed", e) from e

    def update_product(self, product: Product) -> None:
        """Set name and price of the product.

        UpdateItem creates the item when the key is missing, so updating an
        unknown id inserts it instead of raising NotFoundError.
        """
        item = self._marshal(product)
        try:
            self.client.update_item(
                TableName=self.table_name,
                Key={ID_ATTRIBUTE: item[ID_ATTRIBUTE]},
                UpdateExpression=f"SET #n = :name, {PRICE_ATTRIBUTE} = :price",
                ExpressionAttributeNames={"#n": NAME_ATTRIBUTE},
                ExpressionAttributeValues={
                    ":name": item[NAME_ATTRIBUTE],
                    ":price": item[PRICE_ATTRIBUTE],
                },
                ReturnValues="ALL_NEW",
            )
        except AWS_ERRORS as e:
            raise StorageError(f"Product {product} could not be updated/added", e) from e

    def delete_product(self, product: Product) -> None:
        try:
            result = self.client.delete_item(
                TableName=self.table_name,
                Key={ID_ATTRIBUTE: {"N": str(product.id)}},
                ReturnValues="ALL_OLD",
            )
        except AWS_ERRORS as e:
            raise StorageError(f"Product {product} could not be deleted", e) from e

        if not result.get("Attributes"):
            raise NotFoundError(product.id)

    def _marshal(self, product: Product) -> Dict[str, Any]:
        # TypeSerializer refuses Infinity and NaN
        try:
            return product.to_item()
        except (TypeError, ValueError) as e:
            raise StorageError(f"Product {product} could not be marshalled", e) from e
