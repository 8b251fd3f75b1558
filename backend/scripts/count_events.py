import os
import sys

from azure.cosmos import CosmosClient

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)) + '/..')

from settings import settings

device_id = sys.argv[1] if len(sys.argv) > 1 else None

client = CosmosClient(settings.cosmos_endpoint, credential=settings.cosmos_key)
container = (
    client.get_database_client(settings.cosmos_database)
    .get_container_client(settings.cosmos_container)
)

if device_id:
    rows = container.query_items(
        "SELECT VALUE COUNT(1) FROM c WHERE c.deviceId = @deviceId",
        parameters=[{"name": "@deviceId", "value": device_id}],
        partition_key=device_id,
    )
    print(f'events for {device_id}:', sum(rows))
else:
    rows = container.query_items(
        "SELECT VALUE COUNT(1) FROM c", enable_cross_partition_query=True
    )
    print('events:', sum(rows))
