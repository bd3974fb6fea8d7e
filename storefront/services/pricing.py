from storefront.config import settings

def line_total(price: float, qty: int) -> float:
    return round(float(price) * qty, settings.decimals)
