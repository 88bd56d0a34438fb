"""
PipeGate: Canonical JSON Encoding — RFC 8785 (JCS)

Every decision request body is produced here. Key order, whitespace and
number formatting are fixed by the RFC, so the same pipeline always
yields the same bytes on the wire.

RFC 8785: https://www.rfc-editor.org/rfc/rfc8785
"""

try:
    import jcs as _jcs
except ImportError as exc:
    raise ImportError(
        "PipeGate requires the 'jcs' package for RFC 8785 compliance.\n"
        "Install with: pip install jcs\n"
        f"Original error: {exc}"
    ) from exc

from pipegate.core.exceptions import SerializationError


def canonicalize(obj: dict) -> bytes:
    """
    Encode a dict to RFC 8785 canonical JSON bytes.

    All values must be JSON-primitive (str, int, float, bool, None, list, dict)
    and every mapping key must be a string. YAML produces int and bool keys
    (`1: a`) that JSON cannot carry.

    Raises:
        SerializationError: if the document holds a key or value JSON cannot
            carry (non-string keys, sets, datetimes, NaN, ...).
    """
    _check_keys(obj, "$")
    try:
        return _jcs.canonicalize(obj)
    except (TypeError, ValueError, AttributeError) as exc:
        raise SerializationError(
            f"document cannot be rendered as canonical JSON: {exc}"
        ) from exc


def _check_keys(value, path: str) -> None:
    if isinstance(value, dict):
        for key, item in value.items():
            if not isinstance(key, str):
                raise SerializationError(
                    "document cannot be rendered as canonical JSON: "
                    f"non-string key {key!r} at {path}"
                )
            _check_keys(item, f"{path}.{key}")
    elif isinstance(value, (list, tuple)):
        for index, item in enumerate(value):
            _check_keys(item, f"{path}[{index}]")
