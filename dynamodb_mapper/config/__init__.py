from .config import MAX_TRANSACTION_ITEMS, DynamoDBConfig

__all__ = ["DynamoDBConfig", "MAX_TRANSACTION_ITEMS"]
