from typing import TypedDict


class VFSStats(TypedDict):
    file_count: int
    folder_count: int
    handle_count: int
    loaded_handle_count: int
    loaded_bytes: int
