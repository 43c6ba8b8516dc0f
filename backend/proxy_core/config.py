from __future__ import annotations

from copy import deepcopy

DEFAULT_PROXY_CORE_SETTINGS: dict[str, object] = {
    "binary_path": "",
    "config_path": "",
    "args": [],
    "stop_timeout_seconds": 5.0,
    "start_grace_seconds": 1.0,
    "log_path": "",
}


def normalize_proxy_core_settings(raw: object) -> dict[str, object]:
    """Normalize a raw proxy core settings object into the expected shape."""
    base = deepcopy(DEFAULT_PROXY_CORE_SETTINGS)
    if isinstance(raw, dict):
        base.update({k: v for k, v in raw.items() if k in base})

    args = base.get("args")
    if isinstance(args, str):
        args = args.split()
    base["args"] = [str(a) for a in (args or [])]

    for key in ("stop_timeout_seconds", "start_grace_seconds"):
        try:
            base[key] = max(0.0, float(base[key]))  # type: ignore[arg-type]
        except (TypeError, ValueError):
            base[key] = DEFAULT_PROXY_CORE_SETTINGS[key]

    for key in ("binary_path", "config_path", "log_path"):
        base[key] = str(base.get(key) or "").strip()
    return base


def is_configured(settings_obj: dict[str, object]) -> bool:
    """Return True if both the binary and its config file are set."""
    return bool(settings_obj.get("binary_path")) and bool(settings_obj.get("config_path"))
