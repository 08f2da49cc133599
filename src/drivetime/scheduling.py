from __future__ import annotations

import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict

from .config import ScheduleConfig

CommandRunner = Callable[[list[str]], subprocess.CompletedProcess[str]]

SERVICE_NAME = "drivetime-scan.service"
POLL_TIMER = "drivetime-poll.timer"
BACKUP_TIMER = "drivetime-backup.timer"


@dataclass
class SchedulePaths:
    unit_dir: Path = Path("/etc/systemd/system")
    executable: str = "/usr/local/bin/drivetime"
    config_path: Path = Path("/etc/drivetime/config.yaml")
    env_path: Path = Path("/etc/drivetime/.env")


class SchedulingService:
    """Installs the scan service plus a frequent and a backup timer.

    Re-running ``reset`` rewrites the same units and re-enables them, so it is safe to repeat.
    """

    def __init__(self, paths: SchedulePaths | None = None, runner: CommandRunner | None = None) -> None:
        self.paths = paths or SchedulePaths()
        self.runner = runner or self._run_command

    def render_units(self, schedule: ScheduleConfig) -> Dict[str, str]:
        service = "\n".join(
            [
                "[Unit]",
                "Description=Reconcile drive-time calendar blocks",
                "Wants=network-online.target",
                "After=network-online.target",
                "",
                "[Service]",
                "Type=oneshot",
                f"EnvironmentFile=-{self.paths.env_path}",
                f"ExecStart={self.paths.executable} --config {self.paths.config_path} scan",
                "",
            ]
        )
        return {
            SERVICE_NAME: service,
            POLL_TIMER: _timer("Frequent drive-time poll", schedule.poll_minutes),
            BACKUP_TIMER: _timer("Backup drive-time poll", schedule.backup_minutes),
        }

    def reset(self, schedule: ScheduleConfig) -> Dict[str, Any]:
        units = self.render_units(schedule)
        self.paths.unit_dir.mkdir(parents=True, exist_ok=True)
        for name, content in units.items():
            (self.paths.unit_dir / name).write_text(content, encoding="utf-8")

        if shutil.which("systemctl") is None:
            return {"installed": True, "enabled": False, "error": "systemctl not available"}

        reload = self.runner(["systemctl", "daemon-reload"])
        if reload.returncode != 0:
            return {"installed": True, "enabled": False, "stderr": reload.stderr.strip()}

        result = self.runner(["systemctl", "enable", "--now", POLL_TIMER, BACKUP_TIMER])
        return {
            "installed": True,
            "enabled": result.returncode == 0,
            "stdout": result.stdout.strip(),
            "stderr": result.stderr.strip(),
        }

    def trigger_now(self) -> Dict[str, Any]:
        if shutil.which("systemctl") is None:
            return {"started": False, "error": "systemctl not available"}

        result = self.runner(["systemctl", "start", "--no-block", SERVICE_NAME])
        return {
            "started": result.returncode == 0,
            "stdout": result.stdout.strip(),
            "stderr": result.stderr.strip(),
        }

    @staticmethod
    def _run_command(cmd: list[str]) -> subprocess.CompletedProcess[str]:
        return subprocess.run(cmd, check=False, text=True, capture_output=True)


def _timer(description: str, minutes: int) -> str:
    return "\n".join(
        [
            "[Unit]",
            f"Description={description}",
            "",
            "[Timer]",
            f"OnCalendar={on_calendar(minutes)}",
            "Persistent=true",
            f"Unit={SERVICE_NAME}",
            "",
            "[Install]",
            "WantedBy=timers.target",
            "",
        ]
    )


def on_calendar(minutes: int) -> str:
    """Express a repeat interval as a systemd OnCalendar expression."""
    if minutes <= 0:
        raise ValueError("Schedule intervals must be positive minutes.")
    if minutes < 60 and 60 % minutes == 0:
        return f"*:0/{minutes}"
    if minutes % 60 == 0 and 24 % (minutes // 60) == 0:
        return f"0/{minutes // 60}:00"
    raise ValueError(f"Interval of {minutes} minutes must divide an hour or a day evenly.")
