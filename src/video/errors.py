from __future__ import annotations


class SynthesisError(RuntimeError):
    """Terminal failure of one synthesis run. Nothing is retried internally."""


class InvalidDuration(SynthesisError):
    pass


class NoVisuals(SynthesisError):
    pass


class AssetLoadError(SynthesisError):
    def __init__(self, asset_name: str, reason: str = "") -> None:
        self.asset_name = asset_name
        message = f"Failed to load visual: {asset_name}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class AssetDecodeError(SynthesisError):
    def __init__(self, asset_name: str, reason: str = "") -> None:
        self.asset_name = asset_name
        message = f"Visual could not be drawn: {asset_name}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class RecordingError(SynthesisError):
    def __init__(self, message: str, stderr_tail: str = "") -> None:
        self.stderr_tail = stderr_tail
        if stderr_tail:
            message = f"{message}\n{stderr_tail.strip()}"
        super().__init__(message)
