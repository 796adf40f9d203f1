"""DynamoDB tablo oluşturma ve silme.

6 tablo: Locations, Items, Categories, Movements, Notifications, Actions
Tüm tablolarda hash key "id"; transaction'lar için "version" özniteliği
DynamoDBDocumentStore tarafından yönetilir.
"""
import boto3
from botocore.exceptions import ClientError

from slotting.config import BOTO_CONFIG, load_settings
from slotting.store.dynamodb import TABLE_NAMES


def _simple_table(table_name: str, indexes: list = None) -> dict:
    """id hash key'li, istek başı ücretli tablo tanımı üretir."""
    definition = {
        "TableName": table_name,
        "KeySchema": [
            {"AttributeName": "id", "KeyType": "HASH"},
        ],
        "AttributeDefinitions": [
            {"AttributeName": "id", "AttributeType": "S"},
        ],
        "BillingMode": "PAY_PER_REQUEST",
    }
    if indexes:
        gsis = []
        for index_name, attribute in indexes:
            definition["AttributeDefinitions"].append(
                {"AttributeName": attribute, "AttributeType": "S"}
            )
            gsis.append({
                "IndexName": index_name,
                "KeySchema": [
                    {"AttributeName": attribute, "KeyType": "HASH"},
                ],
                "Projection": {"ProjectionType": "ALL"},
            })
        definition["GlobalSecondaryIndexes"] = gsis
    return definition


def table_definitions(table_prefix: str = "") -> list:
    """Koleksiyon başına tablo tanımları (isteğe bağlı prefix ile)."""
    indexes = {
        "locations": [("CodeIndex", "code")],
        "items": [("SystemCodeIndex", "systemCode"), ("StatusIndex", "status")],
        "movements": [("ItemIndex", "itemId")],
        "actions": [("StatusIndex", "status")],
    }
    return [
        _simple_table(f"{table_prefix}{name}", indexes.get(collection))
        for collection, name in TABLE_NAMES.items()
    ]


def _client(region: str, endpoint_url: str = None):
    return boto3.client(
        "dynamodb", region_name=region, endpoint_url=endpoint_url, config=BOTO_CONFIG
    )


def create_tables(region: str = None, table_prefix: str = None, endpoint_url: str = None,
                  dynamodb=None):
    """Tüm DynamoDB tablolarını oluşturur (varsa atlar)."""
    settings = load_settings()
    region = region or settings.region
    table_prefix = settings.table_prefix if table_prefix is None else table_prefix
    dynamodb = dynamodb or _client(region, endpoint_url or settings.endpoint_url)

    created = []
    for table_def in table_definitions(table_prefix):
        table_name = table_def["TableName"]
        try:
            dynamodb.describe_table(TableName=table_name)
            print(f"  ⏭️  {table_name} zaten mevcut, atlanıyor")
        except ClientError as e:
            if e.response["Error"]["Code"] == "ResourceNotFoundException":
                print(f"  🔨 {table_name} oluşturuluyor...")
                dynamodb.create_table(**table_def)
                # Tablonun aktif olmasını bekle
                waiter = dynamodb.get_waiter("table_exists")
                waiter.wait(TableName=table_name)
                print(f"  ✓  {table_name} oluşturuldu")
                created.append(table_name)
            else:
                raise
    return created


def delete_tables(region: str = None, table_prefix: str = None, endpoint_url: str = None,
                  dynamodb=None):
    """Tüm tabloları siler (dikkatli kullan)."""
    settings = load_settings()
    region = region or settings.region
    table_prefix = settings.table_prefix if table_prefix is None else table_prefix
    dynamodb = dynamodb or _client(region, endpoint_url or settings.endpoint_url)

    deleted = []
    for table_def in table_definitions(table_prefix):
        table_name = table_def["TableName"]
        try:
            dynamodb.delete_table(TableName=table_name)
            print(f"  🗑️  {table_name} silindi")
            deleted.append(table_name)
        except ClientError:
            print(f"  ⏭️  {table_name} bulunamadı, atlanıyor")
    return deleted


if __name__ == "__main__":
    import sys

    if len(sys.argv) > 1 and sys.argv[1] == "--delete":
        print("🗑️  Tablolar siliniyor...")
        delete_tables()
    else:
        print("🏗️  DynamoDB tabloları oluşturuluyor...\n")
        create_tables()
