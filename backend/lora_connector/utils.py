EUI_LENGTH = 8

def format_eui(eui: bytes) -> str:
    if len(eui) != EUI_LENGTH:
        raise ValueError(f"invalid EUI length {len(eui)}, expected {EUI_LENGTH}")
    return "-".join(f"{b:02X}" for b in eui)

def safe_format_eui(eui: bytes) -> str:
    try:
        return format_eui(eui)
    except ValueError:
        return "invalid EUI"

def format_value(value: float) -> str:
    return f"{value:f}"
