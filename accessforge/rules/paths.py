from typing import Any, Mapping, Optional, Sequence

PATH_SEPARATOR = "."


def resolve_path(data: Any, path: str) -> Optional[Any]:
    """
    Resolve a dotted path such as ``"color_contrast.minimum_ratio"``.

    Mapping keys are looked up by name and list items by integer index.
    Returns None when any segment is missing, so callers can treat an absent
    value and an explicit null the same way.
    """
    if not path:
        return None

    current = data
    for segment in path.split(PATH_SEPARATOR):
        if isinstance(current, Mapping):
            if segment not in current:
                return None
            current = current[segment]
        elif isinstance(current, Sequence) and not isinstance(current, (str, bytes)):
            try:
                current = current[int(segment)]
            except (ValueError, IndexError):
                return None
        else:
            return None
    return current
