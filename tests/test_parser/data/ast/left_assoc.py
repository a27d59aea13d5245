EXPECTED = ("sub",
            ("sub", ("var", "a"), ("var", "b")),
            ("div", ("div", ("var", "c"), ("var", "d")), ("var", "f")))
