def require_positive_number(v: float, name: str = "value") -> None:
    if v <= 0:
        raise ValueError(f"{name} must be > 0")

def parse_id(text: str, name: str = "id") -> int:
    try:
        v = int(str(text).strip().lstrip("#"))
    except ValueError:
        raise ValueError(f"{name} must be a whole number") from None
    require_positive_number(v, name)
    return v
