import re

_TAG_RE = re.compile(r'<[^>]*>')
_CONTROL_RE = re.compile(r'[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]')


def sanitize_string(v):
    if not isinstance(v, str):
        return v
    # 1. Strip HTML tags
    v = _TAG_RE.sub('', v)
    # 2. Drop control characters (newlines and tabs are kept)
    v = _CONTROL_RE.sub('', v)
    # 3. Trim whitespace
    return v.strip()


def sanitize_filename(name: str | None, fallback: str = "file") -> str:
    """Keep only the base name of a client-supplied file name."""
    if not name:
        return fallback
    name = name.replace("\\", "/").rsplit("/", 1)[-1]
    name = _CONTROL_RE.sub('', name).replace('"', '').strip()
    return name[:255] or fallback
