"""``quicktoshl config``: inspect and edit ``config.json``."""

from __future__ import annotations

from typing import Any

import typer
from pydantic import BaseModel, ValidationError

from quicktoshl.config import get_config_dir, load_global_config, save_global_config
from quicktoshl.exit_codes import EXIT_INVALID_USAGE
from quicktoshl.models import GlobalConfig
from quicktoshl.output import emit, error, info, success

config_app = typer.Typer(no_args_is_help=True)


def _settable_keys(model: type[BaseModel], prefix: str = "") -> list[str]:
    keys: list[str] = []
    for name, field in model.model_fields.items():
        annotation = field.annotation
        if isinstance(annotation, type) and issubclass(annotation, BaseModel):
            keys.extend(_settable_keys(annotation, f"{prefix}{name}."))
        else:
            keys.append(f"{prefix}{name}")
    return keys


@config_app.command("show")
def config_show() -> None:
    """Print the stored settings; the config directory goes to stderr."""
    info(f"Config directory: {get_config_dir()}")
    emit(load_global_config())


@config_app.command("set")
def config_set(
    key: str = typer.Argument(help="Dotted key, e.g. 'cache.force_refresh'."),
    value: str = typer.Argument(help="New value; coerced to the key's type."),
) -> None:
    """Change one setting.

    Example::

        quicktoshl config set default_currency EUR
        quicktoshl config set request.timeout 10
    """
    if key not in _settable_keys(GlobalConfig):
        error(f"Unknown config key: {key}")
        raise typer.Exit(code=EXIT_INVALID_USAGE)

    data: dict[str, Any] = load_global_config().model_dump(mode="json")
    *parents, leaf = key.split(".")
    section = data
    for part in parents:
        section = section[part]
    section[leaf] = value

    try:
        updated = GlobalConfig.model_validate(data)
    except ValidationError as exc:
        error(f"Invalid value for {key}: {exc.errors()[0]['msg']}")
        raise typer.Exit(code=EXIT_INVALID_USAGE) from None

    save_global_config(updated)
    stored: Any = updated
    for part in key.split("."):
        stored = getattr(stored, part)
    success(f"Set {key} = {stored}")


@config_app.command("reset")
def config_reset(ctx: typer.Context) -> None:
    """Restore the defaults; asks first unless ``--force`` is set."""
    force = (ctx.find_root().obj or {}).get("force", False)
    if not force and not typer.confirm("Reset all config to defaults?"):
        info("Cancelled.")
        raise typer.Exit()
    save_global_config(GlobalConfig())
    success("Configuration reset to defaults.")
