from decimal import Decimal

EXPECTED = ("sum", "i",
            ("num", Decimal("1")),
            ("num", Decimal("5")),
            ("pow", ("var", "i"), ("num", Decimal("2"))))
