import secrets

# No 0/O, 1/I/L: codes get read aloud and typed in by hand
CODE_ALPHABET = "ABCDEFGHJKMNPQRSTUVWXYZ23456789"


def generate_code(length: int = 10, alphabet: str = CODE_ALPHABET) -> str:
    if length <= 0:
        raise ValueError(f"Code length must be a positive integer, got {length}")
    return "".join(secrets.choice(alphabet) for _ in range(length))
