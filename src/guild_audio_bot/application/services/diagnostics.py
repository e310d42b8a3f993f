"""Read-only introspection over every per-guild registry."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import psutil
from pydantic import BaseModel, ConfigDict, Field

from guild_audio_bot.domain.shared.datetime_utils import human_utc, utcnow
from guild_audio_bot.domain.shared.messages import DiscordUIMessages, LogTemplates
from guild_audio_bot.domain.shared.types import NonNegativeInt, UtcDatetimeField

if TYPE_CHECKING:
    from guild_audio_bot.domain.session.store import SessionStore
    from guild_audio_bot.infrastructure.processes.registry import ProcessRegistry, ProcessStatus

logger = logging.getLogger(__name__)

MIB = 1024 * 1024


class MapSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    size: NonNegativeInt
    keys: list[int] = Field(default_factory=list)
    samples: dict[int, str] = Field(default_factory=dict)


class DiagnosticsReport(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    generated_at: UtcDatetimeField = Field(default_factory=utcnow)
    maps: dict[str, MapSummary] = Field(default_factory=dict)
    process_status: Any = None
    known_guilds: NonNegativeInt = 0
    rss_mb: float | None = None


def describe_entry(value: Any) -> str:
    """Short one-line description of a map value, without live handles."""
    if isinstance(value, BaseModel):
        data = value.model_dump(exclude={"sink", "queue", "lazy_load_info"}, mode="json")
        if hasattr(value, "queue"):
            data["queue_length"] = len(value.queue)
        if hasattr(value, "lazy_load_info"):
            data["upcoming"] = value.lazy_load_info.total_count
        return ", ".join(f"{k}={v}" for k, v in data.items())
    if isinstance(value, list):
        return f"{len(value)} item(s): " + "; ".join(describe_entry(v) for v in value)
    if hasattr(value, "delay") and hasattr(value, "done"):
        return f"delay={value.delay:g}s, done={value.done}"
    return repr(value)


def current_rss_mb() -> float | None:
    try:
        proc = psutil.Process()
        with proc.oneshot():
            return round(proc.memory_info().rss / MIB, 1)
    except psutil.Error as e:
        logger.debug(LogTemplates.DIAGNOSTICS_RSS_FAILED, e)
        return None


class Diagnostics:
    def __init__(
        self,
        store: SessionStore,
        processes: ProcessRegistry,
        sample_size: int = 3,
    ) -> None:
        self._store = store
        self._processes = processes
        self._sample_size = sample_size

    def snapshot(self) -> DiagnosticsReport:
        maps: dict[str, MapSummary] = {}
        for name, mapping in self._store.maps().items():
            keys = sorted(mapping)
            maps[name] = MapSummary(
                size=len(keys),
                keys=keys,
                samples={k: describe_entry(mapping[k]) for k in keys[: self._sample_size]},
            )

        return DiagnosticsReport(
            maps=maps,
            process_status=self._processes.get_status(),
            known_guilds=len(self._store.known_guilds()),
            rss_mb=current_rss_mb(),
        )

    def log_snapshot(self) -> DiagnosticsReport:
        report = self.snapshot()
        for name, summary in report.maps.items():
            logger.info(LogTemplates.DIAGNOSTICS_MAP_SIZE, name, summary.size)
        return report


def format_report(report: DiagnosticsReport) -> str:
    lines = [DiscordUIMessages.INSPECT_HEADER, ""]
    for name, summary in report.maps.items():
        lines.append(DiscordUIMessages.INSPECT_MAP_LINE.format(name=name, size=summary.size))
        for key, sample in summary.samples.items():
            lines.append(DiscordUIMessages.INSPECT_SAMPLE_LINE.format(key=key, sample=sample))

    lines.append("")
    lines.append(DiscordUIMessages.INSPECT_GUILDS_LINE.format(count=report.known_guilds))
    status: ProcessStatus | None = report.process_status
    if status is not None:
        lines.append(
            DiscordUIMessages.INSPECT_PROCESSES_LINE.format(
                processes=status.total_processes, guilds=status.total_guilds
            )
        )
    if report.rss_mb is not None:
        lines.append(DiscordUIMessages.INSPECT_RSS_LINE.format(rss_mb=report.rss_mb))
    lines.append(DiscordUIMessages.INSPECT_FOOTER.format(at=human_utc(report.generated_at)))
    return "\n".join(lines)


def format_process_status(status: ProcessStatus) -> str:
    lines = [
        DiscordUIMessages.PROCESS_STATUS_HEADER,
        "",
        DiscordUIMessages.PROCESS_STATUS_TOTAL_GUILDS.format(count=status.total_guilds),
        DiscordUIMessages.PROCESS_STATUS_TOTAL_PROCESSES.format(count=status.total_processes),
    ]
    if not status.guild_details:
        lines.append("")
        lines.append(DiscordUIMessages.PROCESS_STATUS_NONE)
        return "\n".join(lines)

    lines.append("")
    for guild_id, detail in status.guild_details.items():
        lines.append(
            DiscordUIMessages.PROCESS_STATUS_GUILD_LINE.format(
                guild_id=guild_id,
                alive=detail.alive_processes,
                total=detail.total_processes,
                pids=", ".join(str(pid) for pid in detail.process_pids),
            )
        )
    return "\n".join(lines)
