"""Tagged functions that only touch their own parameters and locals."""

CONFIG = {"scale": 2}


# no-implicit-closure
def total(items):
    result = 0
    for item in items:
        result += item
    return result


# no-implicit-closure (CONFIG)
def scale(value):
    return value * CONFIG["scale"]


# no-implicit-closure
def squares(values):
    return [value * value for value in values if value]


# no-implicit-closure
def factorial(n):
    return 1 if n <= 1 else n * factorial(n - 1)
