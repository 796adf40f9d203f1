"""DynamoDB tablo kurulumu testleri."""

from unittest.mock import MagicMock

from botocore.exceptions import ClientError

from data_layer.infrastructure.dynamodb_setup import create_tables, delete_tables, table_definitions


def _not_found():
    return ClientError({"Error": {"Code": "ResourceNotFoundException", "Message": "yok"}}, "DescribeTable")


class TestTableDefinitions:
    def test_all_collections_defined(self):
        names = [d["TableName"] for d in table_definitions()]
        assert names == ["Locations", "Items", "Categories", "Movements", "Notifications", "Actions"]

    def test_prefix_and_indexes(self):
        definitions = {d["TableName"]: d for d in table_definitions("dev-")}
        items = definitions["dev-Items"]
        assert items["KeySchema"] == [{"AttributeName": "id", "KeyType": "HASH"}]
        assert {i["IndexName"] for i in items["GlobalSecondaryIndexes"]} == {"SystemCodeIndex", "StatusIndex"}
        assert "GlobalSecondaryIndexes" not in definitions["dev-Categories"]


class TestCreateAndDelete:
    def test_creates_only_missing_tables(self):
        def describe(TableName):
            if TableName != "Locations":
                raise _not_found()
            return {}

        client = MagicMock()
        client.describe_table.side_effect = describe
        created = create_tables("us-west-2", "", dynamodb=client)
        assert "Locations" not in created
        assert len(created) == 5
        assert client.create_table.call_count == 5

    def test_delete_skips_missing(self):
        client = MagicMock()
        client.delete_table.side_effect = [None, _not_found(), None, None, None, None]
        deleted = delete_tables("us-west-2", "", dynamodb=client)
        assert "Items" not in deleted
        assert len(deleted) == 5
