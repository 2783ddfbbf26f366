from __future__ import annotations


class MetagenError(Exception):
    """Fatal condition that aborts a scan or diff run."""

    exit_code = 1


class ConfigError(MetagenError):
    exit_code = 2


class SnapshotError(MetagenError):
    pass


class DuplicateIdError(MetagenError):
    def __init__(self, adapter_id: str) -> None:
        super().__init__(f"duplicate adapter Id '{adapter_id}' found in the current scan")
        self.adapter_id = adapter_id


class ConflictError(MetagenError):
    pass


class OutputError(MetagenError):
    pass
