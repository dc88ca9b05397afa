import os

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def env_flag(*names: str, default: bool = False) -> bool:
    """Parse the first set environment variable among ``names`` as a boolean.

    Accepts "1"/"0", "true"/"false", "yes"/"no" and "on"/"off"
    (case-insensitive). Returns ``default`` when none of the variables is set
    or the first one set cannot be interpreted.
    """
    for name in names:
        val = os.environ.get(name)
        if val is None:
            continue
        norm = str(val).strip().lower()
        if norm in _TRUE:
            return True
        if norm in _FALSE:
            return False
        return default
    return default
