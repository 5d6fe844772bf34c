from ulid import ULID


def new_ulid(prefix: str | None = None) -> str:
    value = str(ULID()).lower()
    return f"{prefix}{value}" if prefix else value


def new_trial_id() -> str:
    return new_ulid("ft_")
