"""Buffer file I/O: path validation and encoding-aware read/write.

Pulled pages are written to local files that the user edits with any XML
editor; pushes read them back. Reads detect the encoding with
charset-normalizer since editors do not always save as UTF-8.
"""

from pathlib import Path

from charset_normalizer import from_bytes


def validate_file_path(path_str: str) -> Path:
    """Validate and resolve an existing buffer file path.

    Raises:
        ValueError: If path is relative, doesn't exist, or is not a file.
    """
    path = Path(path_str)
    if not path.is_absolute():
        raise ValueError(f"Path must be absolute: {path_str}")
    resolved = path.resolve()
    if not resolved.exists():
        raise ValueError(f"File not found: {path_str}")
    if not resolved.is_file():
        raise ValueError(f"Path is not a file: {path_str}")
    return resolved


def validate_output_path(
    path_str: str, base_dir: str | None = None
) -> Path:
    """Validate a buffer file path that may not exist yet.

    Args:
        path_str: Absolute path for the buffer file.
        base_dir: Optional directory the buffer must live under.

    Raises:
        ValueError: If path is relative, its parent doesn't exist, or it is
            outside base_dir.
    """
    path = Path(path_str)
    if not path.is_absolute():
        raise ValueError(f"Path must be absolute: {path_str}")
    resolved = path.resolve()
    if not resolved.parent.exists():
        raise ValueError(
            f"Output parent directory not found: {resolved.parent}"
        )
    if base_dir is not None:
        base_resolved = Path(base_dir).resolve()
        if not resolved.is_relative_to(base_resolved):
            raise ValueError(
                f"Output path is outside base directory: {resolved} not under {base_resolved}"
            )
    return resolved


def read_file_with_encoding(path: Path) -> tuple[str, str]:
    """Read a file, detecting its encoding.

    Empty files and failed detection fall back to UTF-8.

    Returns:
        Tuple of (content_string, detected_encoding).
    """
    raw = path.read_bytes()
    if not raw:
        return ("", "utf-8")

    result = from_bytes(raw).best()
    if result is None:
        return (raw.decode("utf-8", errors="replace"), "utf-8")

    encoding = result.encoding
    # ascii is a strict subset of utf-8
    if encoding == "ascii":
        encoding = "utf-8"
    return (str(result), encoding)


def write_file(
    path: Path, content: str, encoding: str = "utf-8"
) -> int:
    """Write content, creating parent directories as needed.

    Returns:
        Number of bytes written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    encoded = content.encode(encoding)
    path.write_bytes(encoded)
    return len(encoded)
