"""Hardware sensor snapshot handed over by the sensor collector."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Mapping, Optional, Tuple


def _text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, str):
        return value
    return str(value)


@dataclass(frozen=True)
class SensorReading:
    """One leaf of the sensor snapshot: (value, available, reason, source)."""
    value: Any = None
    available: bool = False
    reason: Optional[str] = None
    source: Optional[str] = None

    @classmethod
    def from_dict(cls, d: Any) -> "SensorReading":
        """Accept either a reading mapping or a bare scalar."""
        if d is None:
            return cls()
        if isinstance(d, SensorReading):
            return d
        if isinstance(d, Mapping):
            value = d.get("value")
            available = d.get("available")
            if available is None:
                available = value is not None
            return cls(
                value=value,
                available=bool(available),
                reason=_text(d.get("reason")),
                source=_text(d.get("source")),
            )
        return cls(value=d, available=True)

    @classmethod
    def missing(cls, reason: str, source: Optional[str] = None) -> "SensorReading":
        return cls(value=None, available=False, reason=reason, source=source)

    def invalidated(self, reason: str) -> "SensorReading":
        return replace(self, available=False, reason=reason)


def _reading(d: Mapping, *keys: str) -> SensorReading:
    for key in keys:
        if key in d:
            return SensorReading.from_dict(d[key])
    return SensorReading()


@dataclass(frozen=True)
class CpuSensors:
    temp_c: SensorReading = field(default_factory=SensorReading)
    temp_source: Optional[str] = None

    @classmethod
    def from_dict(cls, d: Mapping) -> "CpuSensors":
        return cls(
            temp_c=_reading(d, "tempC", "cpuTempC", "temperature"),
            temp_source=d.get("tempSource") or d.get("cpuTempSource"),
        )


@dataclass(frozen=True)
class GpuSensors:
    name: SensorReading = field(default_factory=SensorReading)
    temp_c: SensorReading = field(default_factory=SensorReading)
    load_percent: SensorReading = field(default_factory=SensorReading)
    vram_total_mb: SensorReading = field(default_factory=SensorReading)
    vram_used_mb: SensorReading = field(default_factory=SensorReading)

    @classmethod
    def from_dict(cls, d: Mapping) -> "GpuSensors":
        return cls(
            name=_reading(d, "name", "gpuName"),
            temp_c=_reading(d, "tempC", "gpuTempC", "temperature"),
            load_percent=_reading(d, "loadPercent", "gpuLoadPercent", "load"),
            vram_total_mb=_reading(d, "vramTotalMB", "vramTotalMb"),
            vram_used_mb=_reading(d, "vramUsedMB", "vramUsedMb"),
        )


@dataclass(frozen=True)
class DiskSensors:
    name: SensorReading = field(default_factory=SensorReading)
    temp_c: SensorReading = field(default_factory=SensorReading)

    @classmethod
    def from_dict(cls, d: Mapping) -> "DiskSensors":
        return cls(
            name=_reading(d, "name", "diskName"),
            temp_c=_reading(d, "tempC", "temperature"),
        )

    @property
    def label(self) -> Optional[str]:
        return self.name.value if self.name.available and self.name.value else None


@dataclass(frozen=True)
class HardwareSensors:
    cpu: Optional[CpuSensors] = None
    gpu: Optional[GpuSensors] = None
    disks: List[DiskSensors] = field(default_factory=list)
    exceptions: List[str] = field(default_factory=list)

    # cpu temp, gpu name, gpu temp, gpu load, vram total, vram used
    TRACKED_SENSORS = 6

    @classmethod
    def from_dict(cls, d: Optional[Mapping]) -> Optional["HardwareSensors"]:
        if d is None:
            return None
        cpu = d.get("cpu")
        gpu = d.get("gpu")
        disks = d.get("disks") or []
        return cls(
            cpu=CpuSensors.from_dict(cpu) if isinstance(cpu, Mapping) else None,
            gpu=GpuSensors.from_dict(gpu) if isinstance(gpu, Mapping) else None,
            disks=[DiskSensors.from_dict(x) for x in disks if isinstance(x, Mapping)],
            exceptions=[str(x) for x in (d.get("exceptions") or [])],
        )

    def availability_summary(self) -> Tuple[int, int]:
        """(available, total) over the six tracked sensors."""
        readings = [self.cpu.temp_c if self.cpu else None]
        if self.gpu:
            readings += [
                self.gpu.name,
                self.gpu.temp_c,
                self.gpu.load_percent,
                self.gpu.vram_total_mb,
                self.gpu.vram_used_mb,
            ]
        available = sum(1 for r in readings if r is not None and r.available)
        return available, self.TRACKED_SENSORS

    def as_dict(self) -> Dict[str, Any]:
        def _r(r: SensorReading) -> Dict[str, Any]:
            return {"value": r.value, "available": r.available, "reason": r.reason, "source": r.source}

        out: Dict[str, Any] = {"disks": [], "exceptions": list(self.exceptions)}
        if self.cpu:
            out["cpu"] = {"tempC": _r(self.cpu.temp_c)}
        if self.gpu:
            out["gpu"] = {
                "name": _r(self.gpu.name),
                "tempC": _r(self.gpu.temp_c),
                "loadPercent": _r(self.gpu.load_percent),
                "vramTotalMB": _r(self.gpu.vram_total_mb),
                "vramUsedMB": _r(self.gpu.vram_used_mb),
            }
        out["disks"] = [{"name": _r(x.name), "tempC": _r(x.temp_c)} for x in self.disks]
        return out
