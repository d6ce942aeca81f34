"""Line-ending normalization applied to snapshots before merging."""


def normalize_line_endings(text: str) -> str:
    """Convert CRLF line endings to LF.

    A carriage return is only removed where it ends a line; stray
    carriage returns inside a line are content and are kept.
    """
    text = text.replace("\r\n", "\n")
    if text.endswith("\r"):
        text = text[:-1]
    return text
