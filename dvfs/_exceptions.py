class VFSPathOutOfRangeError(IndexError):
    """Raised when a path index or slice lies outside the path. Subclass of IndexError."""
    def __init__(self, path: object, index: object) -> None:
        self.path = path
        self.index = index
        super().__init__(f"VFS path index {index} out of range for '{path}'.")


class VFSInvalidNameError(ValueError):
    """Raised when a file or folder name is empty, reserved or contains a separator."""
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Invalid VFS name: {name!r}.")


class VFSMissingFolderError(FileNotFoundError):
    """Raised when path resolution fails at a folder component. Subclass of FileNotFoundError."""
    def __init__(self, path: object) -> None:
        self.path = str(path)
        super().__init__(f"No such folder: '{self.path}'")


class VFSMissingFileError(FileNotFoundError):
    """Raised when no file entry exists at a path. Subclass of FileNotFoundError."""
    def __init__(self, path: object) -> None:
        self.path = str(path)
        super().__init__(f"No such file: '{self.path}'")


class VFSMountUnresolvedError(VFSMissingFolderError):
    """Raised when a bulk source's mount point cannot be reached."""
    def __init__(self, path: object, reason: str = "") -> None:
        super().__init__(path)
        self.reason = reason
        message = f"Cannot resolve mount point: '{self.path}'"
        self.args = (f"{message} ({reason})" if reason else message,)


class VFSNameCollisionError(FileExistsError):
    """Raised when a name is already taken by an entry of the other kind."""
    def __init__(self, path: object, existing: str) -> None:
        self.path = str(path)
        self.existing = existing
        super().__init__(f"Name already used by a {existing}: '{self.path}'")


class VFSSourceUnavailableError(OSError):
    """Raised when content is requested from a missing or unreadable source. Subclass of OSError."""
    def __init__(self, source: object, reason: str = "missing or not a regular file") -> None:
        self.source = source
        self.reason = reason
        super().__init__(f"Content source unavailable: {source!r} ({reason}).")
