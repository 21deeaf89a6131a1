from .directory_manager import SUBDIRECTORIES, DirectoryManager

__all__ = ["DirectoryManager", "SUBDIRECTORIES"]
