# Storage clients
from clients.storage import KeyValueStore, MemoryStore, read_json, write_json
from clients.valkey_client import ValkeyClient
