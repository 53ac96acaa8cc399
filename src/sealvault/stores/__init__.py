from sealvault.stores.memory import MemoryBlobStore
from sealvault.stores.walrus import WalrusBlobStore

__all__ = ["MemoryBlobStore", "WalrusBlobStore"]
