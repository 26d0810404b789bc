from .file_store import FileStateStore, StoredSnapshot

__all__ = ["FileStateStore", "StoredSnapshot"]
