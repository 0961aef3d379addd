from .directory_client import DirectoryClient, get_directory_client

__all__ = ["DirectoryClient", "get_directory_client"]
