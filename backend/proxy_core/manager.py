from __future__ import annotations

import hashlib
import logging
import subprocess
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable

from config.domain_exceptions import GatewayError

from .config import is_configured, normalize_proxy_core_settings

GATEWAY_NAME = "Proxy core"

logger = logging.getLogger(__name__)


class CoreProcessError(GatewayError):
    gateway_name = GATEWAY_NAME


class CoreNotConfigured(CoreProcessError):
    pass


class CoreStartError(CoreProcessError):
    def __init__(self, error: str | None = None):
        self.operation = "start"
        self.error = error
        message = f"{GATEWAY_NAME} start failed."
        if error:
            message = f"{message} Error: {error}"
        super().__init__(message)


class CoreStopError(CoreProcessError):
    def __init__(self, error: str | None = None):
        self.operation = "stop"
        self.error = error
        message = f"{GATEWAY_NAME} stop failed."
        if error:
            message = f"{message} Error: {error}"
        super().__init__(message)


@dataclass(frozen=True)
class CoreProcessStatus:
    state: str
    pid: int | None = None
    started_at: datetime | None = None
    restart_count: int = 0
    last_error: str | None = None
    version: str | None = None

    @property
    def running(self) -> bool:
        return self.state == "running"

    def as_dict(self) -> dict[str, Any]:
        """Serialize status to a JSON-friendly dict for API responses."""
        return {
            "state": self.state,
            "running": self.running,
            "pid": self.pid,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "restart_count": self.restart_count,
            "last_error": self.last_error,
            "version": self.version,
        }


def _now() -> datetime:
    """Return timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


def _config_fingerprint(config_path: str) -> str:
    """Return the SHA-256 of the core config file."""
    try:
        return hashlib.sha256(Path(config_path).read_bytes()).hexdigest()
    except OSError as exc:
        raise CoreNotConfigured(f"Proxy core config not readable: {config_path} ({exc.strerror or exc})") from exc


def _parse_version(output: str) -> str | None:
    """Extract the version from `<core> version` output, e.g. "Xray 1.8.4 (Xray, Penetrates Everything.)"."""
    first_line = (output or "").strip().splitlines()[0:1]
    if not first_line:
        return None
    parts = first_line[0].split()
    return parts[1] if len(parts) > 1 else None


class CoreProcessManager:
    """
    Owns the proxy core child process.

    - `restart(force=False)` only restarts when the process is down or its
      config file changed since the last start; `force=True` always restarts.
    - Start/stop/restart are serialized by a lock, so concurrent callers
      (scheduled job and Control API) each get their own result in turn.
    - A process that dies within `start_grace_seconds` counts as a failed start.
    """

    def __init__(
        self,
        *,
        settings_obj: dict[str, object] | None = None,
        popen: Callable[..., subprocess.Popen] | None = None,
    ) -> None:
        """Initialize manager state (does not spawn anything)."""
        self._lock = threading.Lock()
        self._restart_lock = threading.Lock()
        self._settings: dict[str, object] | None = (
            normalize_proxy_core_settings(settings_obj) if settings_obj is not None else None
        )
        self._popen = popen or subprocess.Popen
        self._process: subprocess.Popen | None = None
        self._config_fingerprint: str | None = None
        self._started_at: datetime | None = None
        self._restart_count = 0
        self._last_error: str | None = None
        self._version: str | None = None

    def _get_settings(self) -> dict[str, object]:
        with self._lock:
            if self._settings is not None:
                return dict(self._settings)
        from django.conf import settings as django_settings

        return normalize_proxy_core_settings(getattr(django_settings, "PROXY_CORE", {}) or {})

    def is_running(self) -> bool:
        with self._lock:
            return self._process is not None and self._process.poll() is None

    def get_status(self) -> CoreProcessStatus:
        """Return a non-raising snapshot of the core process."""
        with self._lock:
            process = self._process
            running = process is not None and process.poll() is None
            if process is not None and not running and self._last_error is None:
                self._last_error = f"{GATEWAY_NAME} exited with code {process.returncode}."
            last_error = self._last_error
            started_at = self._started_at if running else None
            restart_count = self._restart_count
            pid = process.pid if running else None

        if running:
            state = "running"
        elif last_error:
            state = "error"
        else:
            state = "stopped"

        return CoreProcessStatus(
            state=state,
            pid=pid,
            started_at=started_at,
            restart_count=restart_count,
            last_error=last_error,
            version=self.get_version(),
        )

    def get_version(self) -> str | None:
        """Return the core binary's version (cached, best-effort)."""
        with self._lock:
            if self._version is not None:
                return self._version
        settings_obj = self._get_settings()
        binary = str(settings_obj.get("binary_path") or "")
        if not binary:
            return None
        try:
            completed = subprocess.run(
                [binary, "version"],
                capture_output=True,
                text=True,
                timeout=5,
                check=False,
            )
        except (OSError, subprocess.SubprocessError):
            logger.debug("Could not read %s version from %s", GATEWAY_NAME, binary, exc_info=True)
            return None
        version = _parse_version(completed.stdout)
        with self._lock:
            self._version = version
        return version

    def start(self) -> bool:
        """Start the core if it is not running. Returns False if it already was."""
        with self._restart_lock:
            if self.is_running():
                return False
            self._start_locked(self._require_settings())
            return True

    def stop(self) -> None:
        """Stop the core if it is running."""
        with self._restart_lock:
            self._stop_locked(self._get_settings())

    def restart(self, *, force: bool) -> bool:
        """
        Restart the core.

        Without `force`, a running core whose config is unchanged is left alone
        and False is returned. Raises CoreProcessError subclasses on failure.
        """
        with self._restart_lock:
            settings_obj = self._require_settings()
            if not force and self.is_running():
                fingerprint = _config_fingerprint(str(settings_obj["config_path"]))
                with self._lock:
                    unchanged = fingerprint == self._config_fingerprint
                if unchanged:
                    logger.debug("%s config unchanged and process healthy; skipping restart", GATEWAY_NAME)
                    return False

            self._stop_locked(settings_obj)
            self._start_locked(settings_obj)
            with self._lock:
                self._restart_count += 1
            return True

    def _require_settings(self) -> dict[str, object]:
        settings_obj = self._get_settings()
        if not is_configured(settings_obj):
            raise CoreNotConfigured(f"{GATEWAY_NAME} binary/config paths are not configured.")
        return settings_obj

    def _set_error(self, error: str | None) -> None:
        with self._lock:
            self._last_error = error

    def _start_locked(self, settings_obj: dict[str, object]) -> None:
        """Spawn the core process; caller holds `_restart_lock`."""
        config_path = str(settings_obj["config_path"])
        fingerprint = _config_fingerprint(config_path)
        cmd = [str(settings_obj["binary_path"]), "run", "-c", config_path, *settings_obj.get("args", [])]

        log_path = str(settings_obj.get("log_path") or "")
        log_file = None
        try:
            if log_path:
                log_file = open(log_path, "ab")
            process = self._popen(
                cmd,
                stdin=subprocess.DEVNULL,
                stdout=log_file if log_file is not None else subprocess.DEVNULL,
                stderr=subprocess.STDOUT,
                close_fds=True,
            )
        except OSError as exc:
            self._set_error(str(exc))
            raise CoreStartError(str(exc)) from exc
        finally:
            if log_file is not None:
                log_file.close()

        grace = float(settings_obj.get("start_grace_seconds") or 0)
        try:
            returncode = process.wait(timeout=grace) if grace > 0 else process.poll()
        except subprocess.TimeoutExpired:
            returncode = None
        if returncode is not None:
            error = f"process exited with code {returncode} right after start"
            self._set_error(f"{GATEWAY_NAME} {error}.")
            raise CoreStartError(error)

        with self._lock:
            self._process = process
            self._config_fingerprint = fingerprint
            self._started_at = _now()
            self._last_error = None
        logger.info("%s started (pid=%s)", GATEWAY_NAME, process.pid)

    def _stop_locked(self, settings_obj: dict[str, object]) -> None:
        """Terminate, then kill, the core process; caller holds `_restart_lock`."""
        with self._lock:
            process = self._process
            self._process = None
            self._started_at = None
        if process is None or process.poll() is not None:
            return

        timeout = float(settings_obj.get("stop_timeout_seconds") or 0)
        try:
            process.terminate()
            try:
                process.wait(timeout=timeout)
            except subprocess.TimeoutExpired:
                logger.warning("%s did not exit within %.1fs; killing pid %s", GATEWAY_NAME, timeout, process.pid)
                process.kill()
                process.wait(timeout=timeout)
        except (OSError, subprocess.TimeoutExpired) as exc:
            with self._lock:
                self._process = process
                self._last_error = f"{GATEWAY_NAME} could not be stopped: {exc}"
            raise CoreStopError(str(exc)) from exc
        logger.info("%s stopped (pid=%s)", GATEWAY_NAME, process.pid)


proxy_core_manager = CoreProcessManager()
