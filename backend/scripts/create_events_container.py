import os
import sys

from azure.cosmos import CosmosClient, PartitionKey

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)) + '/..')

from settings import settings

# Events are partitioned by device; ids are unique within a partition.
PARTITION_KEY = PartitionKey(path="/deviceId")

print('Connecting to', settings.cosmos_endpoint)
client = CosmosClient(settings.cosmos_endpoint, credential=settings.cosmos_key)
database = client.create_database_if_not_exists(id=settings.cosmos_database)
database.create_container_if_not_exists(
    id=settings.cosmos_container,
    partition_key=PARTITION_KEY,
)
print(f'Container {settings.cosmos_database}/{settings.cosmos_container} ready')
