from decimal import Decimal, ROUND_HALF_UP

MONEY = Decimal("0.01")


def qmoney(x: Decimal) -> Decimal:
    return Decimal(x).quantize(MONEY, rounding=ROUND_HALF_UP)


def to_decimal(x) -> Decimal:
    # str() first so floats keep their printed value (0.1 -> "0.1")
    if isinstance(x, Decimal):
        return x
    return Decimal(str(x))
