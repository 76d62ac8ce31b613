from ._bulk import (
    BulkSource,
    FilteredLooseFilesSource,
    LooseFilesSource,
    MappingSource,
    TarArchiveSource,
    ZipArchiveSource,
)
from ._exceptions import (
    VFSInvalidNameError,
    VFSMissingFileError,
    VFSMissingFolderError,
    VFSMountUnresolvedError,
    VFSNameCollisionError,
    VFSPathOutOfRangeError,
    VFSSourceUnavailableError,
)
from ._fs import Directory, FileEntry, VirtualFileSystem
from ._handle import ContentHandle, HandleRegistry
from ._path import VPath, parse_path
from ._source import BytesSource, ContentSource, LooseFileSource, TarEntrySource, ZipEntrySource
from ._typing import VFSStats

__all__ = [
    "VirtualFileSystem",
    "Directory",
    "FileEntry",
    "VPath",
    "parse_path",
    "ContentHandle",
    "HandleRegistry",
    "ContentSource",
    "BytesSource",
    "LooseFileSource",
    "ZipEntrySource",
    "TarEntrySource",
    "BulkSource",
    "LooseFilesSource",
    "FilteredLooseFilesSource",
    "ZipArchiveSource",
    "TarArchiveSource",
    "MappingSource",
    "VFSStats",
    "VFSPathOutOfRangeError",
    "VFSInvalidNameError",
    "VFSMissingFolderError",
    "VFSMissingFileError",
    "VFSMountUnresolvedError",
    "VFSNameCollisionError",
    "VFSSourceUnavailableError",
]
__version__ = "0.1.0"
