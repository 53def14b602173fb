from .directory import DirectoryService
