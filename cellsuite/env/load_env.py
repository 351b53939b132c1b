import os
from typing import Callable, Mapping, TypeVar

from dotenv import dotenv_values

from .env import Env, PrimaryType

T = TypeVar("T", bound=Env)


def load_env(
    env_type: type[T] = Env,
    env_file: str | None = ".env",
    override: T | None = None,
) -> T:
    """
    Build ``env_type`` from the process environment, then ``env_file``,
    then the fields explicitly set on ``override``. Later sources win.
    Raw strings are converted with ``env_type.types_map()`` and names the
    map does not know are ignored.
    """
    converters = env_type.types_map()

    values: dict[str, PrimaryType] = _convert(os.environ, converters)

    if env_file and os.path.exists(env_file):
        values.update(
            _convert(dotenv_values(dotenv_path=env_file), converters)
        )

    if override is not None:
        values.update(override.model_dump(exclude_unset=True))

    return env_type(**values)


def _convert(
    source: Mapping[str, str | None],
    converters: Mapping[str, Callable[[str], PrimaryType]],
) -> dict[str, PrimaryType]:
    return {
        name: converters[name](value)
        for name, value in source.items()
        if name in converters and value
    }
