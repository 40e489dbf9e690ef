"""Map sections of the external scan document onto metric groups.

Each mapper receives the whole ``sections`` mapping and returns the metrics it
could build; the assembler decides whether to call it (noise filter) and how
to merge the result.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from healthfusion.models.metrics import (
    NormalizedMetric,
    Reason,
    create_available,
    create_unavailable,
)
from healthfusion.models.snapshot import (
    ApplicationsSummary,
    ExternalSummary,
    InventorySummary,
    MachineInfo,
    MetricGroup,
    UpdatesSummary,
)
from healthfusion.resolution import (
    get_value,
    resolve_section,
    try_bool,
    try_float,
    try_int,
    try_list,
    try_mapping,
    try_string,
)

PENDING_ALIASES = ("pendingCount", "PendingCount", "PendingUpdatesCount", "pending_count")
REBOOT_ALIASES = ("rebootRequired", "RebootRequired", "RebootPending", "NeedsReboot")


# ---- metric helpers ----

def string_metric(data: Any, prop: str, source: str) -> NormalizedMetric:
    value = try_string(data, prop)
    if value is None:
        return create_unavailable("", source, Reason.PROPERTY_NOT_FOUND)
    return create_available(value, "", source)


def number_metric(data: Any, prop: str, unit: str, source: str) -> NormalizedMetric:
    value = try_float(data, prop)
    if value is None:
        return create_unavailable(unit, source, Reason.PROPERTY_NOT_FOUND)
    return create_available(round(value, 2), unit, source)


def bool_metric(data: Any, prop: str, source: str) -> NormalizedMetric:
    value = try_bool(data, prop)
    if value is None:
        return create_unavailable("bool", source, Reason.PROPERTY_NOT_FOUND)
    return create_available(value, "bool", source)


def count_metric(count: int, source: str) -> NormalizedMetric:
    return create_available(int(count), "count", source)


def _data(sections: Mapping, *aliases: str) -> Optional[Any]:
    lookup = resolve_section(sections, aliases)
    return lookup.data if lookup.found else None


def _names(items: Any, aliases: Sequence[str], limit: int) -> List[str]:
    if not isinstance(items, list):
        return []
    names = []
    for item in items:
        name = try_string(item, *aliases)
        if name and name.strip():
            names.append(name)
        if len(names) >= limit:
            break
    return names


# ---- section mappers ----

def map_os(sections: Mapping) -> MetricGroup:
    group: MetricGroup = {}
    os_data = _data(sections, "OS")
    if os_data is not None:
        for key, prop in (
            ("caption", "Caption"),
            ("version", "Version"),
            ("buildNumber", "BuildNumber"),
            ("installDate", "InstallDate"),
            ("lastBootTime", "LastBootUpTime"),
            ("uptime", "Uptime"),
            ("architecture", "OSArchitecture"),
        ):
            group[key] = string_metric(os_data, prop, "PS/OS")
    integrity = _data(sections, "SystemIntegrity")
    if integrity is not None:
        group["sfcStatus"] = string_metric(integrity, "SfcStatus", "PS/SystemIntegrity")
        group["dismHealth"] = string_metric(integrity, "DismHealth", "PS/SystemIntegrity")
    return group


def map_memory(sections: Mapping) -> MetricGroup:
    mem = _data(sections, "Memory", "MemoryInfo")
    if mem is None:
        return {}
    src = "PS/Memory"
    return {
        "totalGB": number_metric(mem, "TotalMemoryGB", "GB", src),
        "availableGB": number_metric(mem, "AvailableMemoryGB", "GB", src),
        "usedPercent": number_metric(mem, "UsedMemoryPercent", "%", src),
        "freePercent": number_metric(mem, "FreeMemoryPercent", "%", src),
        "commitTotalGB": number_metric(mem, "CommitTotalGB", "GB", src),
        "commitUsedGB": number_metric(mem, "CommitUsedGB", "GB", src),
        "pageFileUsagePercent": number_metric(mem, "PageFileUsagePercent", "%", src),
    }


def map_security(sections: Mapping) -> MetricGroup:
    sec = _data(sections, "Security")
    if sec is None:
        return {}
    src = "PS/Security"
    return {
        "antivirusStatus": string_metric(sec, "AntivirusStatus", src),
        "antivirusName": string_metric(sec, "AntivirusName", src),
        "firewallStatus": string_metric(sec, "FirewallStatus", src),
        "uacEnabled": bool_metric(sec, "UacEnabled", src),
        "secureBootEnabled": bool_metric(sec, "SecureBootEnabled", src),
        "bitlockerStatus": string_metric(sec, "BitlockerStatus", src),
    }


def map_stability(sections: Mapping) -> MetricGroup:
    group: MetricGroup = {}

    events = _data(sections, "EventLogs", "EventLogInfo")
    if events is not None:
        critical = errors = 0
        logs = try_mapping(events, "logs")
        for log in (logs or {}).values():
            critical += try_int(log, "criticalCount") or 0
            errors += try_int(log, "errorCount") or 0
        group["criticalEvents24h"] = count_metric(critical, "PS/EventLogs")
        group["errorEvents24h"] = count_metric(errors, "PS/EventLogs")
        bsods = try_int(events, "bsodCount")
        if bsods is not None:
            group["bsods"] = count_metric(bsods, "PS/EventLogs")
        group["warningEvents24h"] = create_unavailable(
            "count", "PS/EventLogs", Reason.NOT_COLLECTED_BY_SCAN
        )

    reliability = _data(sections, "ReliabilityHistory")
    if reliability is not None:
        src = "PS/ReliabilityHistory"
        crashes = try_int(reliability, "appCrashes")
        if crashes is not None:
            group["appFailures30d"] = count_metric(crashes, src)
        event_count = try_int(reliability, "eventCount")
        if event_count is not None:
            group["reliabilityEventCount"] = count_metric(event_count, src)
        group["reliabilityIndex"] = create_unavailable("", src, Reason.NOT_COLLECTED_BY_SCAN)
        group["hwFailures30d"] = create_unavailable("count", src, Reason.NOT_COLLECTED_BY_SCAN)

    minidump = _data(sections, "MinidumpAnalysis")
    if minidump is not None:
        src = "PS/MinidumpAnalysis"
        dumps = try_int(minidump, "minidumpCount")
        if dumps is not None:
            group["minidumpCount"] = count_metric(dumps, src)
        group["lastBsodDate"] = create_unavailable("date", src, Reason.NOT_COLLECTED_BY_SCAN)

    return group


def map_storage_extras(sections: Mapping) -> MetricGroup:
    group: MetricGroup = {}
    storage = _data(sections, "Storage")
    if storage is not None:
        for i, drive in enumerate(try_list(storage, "Drives") or []):
            group[f"drive_{i}_totalGB"] = number_metric(drive, "TotalSizeGB", "GB", "PS/Storage")
            group[f"drive_{i}_freeGB"] = number_metric(drive, "FreeSpaceGB", "GB", "PS/Storage")
            group[f"drive_{i}_usedPercent"] = number_metric(drive, "UsedPercent", "%", "PS/Storage")
    smart = _data(sections, "SmartDetails")
    if smart is not None:
        group["smartHealthy"] = bool_metric(smart, "AllHealthy", "PS/SmartDetails")
        group["smartWarnings"] = number_metric(smart, "WarningCount", "count", "PS/SmartDetails")
    temp = _data(sections, "TempFiles")
    if temp is not None:
        group["tempFilesSizeMB"] = number_metric(temp, "TotalSizeMB", "MB", "PS/TempFiles")
        group["tempFilesCount"] = number_metric(temp, "FileCount", "count", "PS/TempFiles")
    return group


def map_network(sections: Mapping) -> MetricGroup:
    group: MetricGroup = {}
    net = _data(sections, "Network")
    if net is not None:
        adapters = get_value(net, "Adapters")
        if isinstance(adapters, list):
            group["adapterCount"] = count_metric(len(adapters), "PS/Network")
        elif isinstance(adapters, Mapping):
            group["adapterCount"] = count_metric(1, "PS/Network")
        group["defaultGateway"] = string_metric(net, "DefaultGateway", "PS/Network")
        group["dnsServers"] = string_metric(net, "DnsServers", "PS/Network")
        group["publicIP"] = string_metric(net, "PublicIP", "PS/Network")

    latency = _data(sections, "NetworkLatency")
    if latency is not None:
        google = cloudflare = None
        samples: List[float] = []
        for entry in try_list(latency, "ping") or []:
            if try_bool(entry, "success") is not True:
                continue
            ms = try_float(entry, "latencyMs")
            if ms is None:
                continue
            samples.append(ms)
            target = try_string(entry, "target") or ""
            if "8.8.8.8" in target:
                google = ms
            if "1.1.1.1" in target:
                cloudflare = ms
        src = "PS/NetworkLatency"
        if google is not None:
            group["pingGoogle"] = create_available(google, "ms", src)
        if cloudflare is not None:
            group["pingCloudflare"] = create_available(cloudflare, "ms", src)
        if samples:
            group["avgLatency"] = create_available(round(sum(samples) / len(samples), 2), "ms", src)
    return group


def map_updates(sections: Mapping) -> MetricGroup:
    updates = _data(sections, "WindowsUpdate", "Updates", "WindowsUpdateInfo")
    if updates is None:
        return {}
    src = "PS/WindowsUpdate"
    group: MetricGroup = {}
    pending = try_int(updates, *PENDING_ALIASES)
    if pending is not None:
        group["pendingCount"] = count_metric(pending, src)
    last_check = try_string(updates, "LastSearchDate", "lastSearchDate", "LastCheck", "lastCheck")
    if last_check:
        group["lastCheckDate"] = create_available(last_check, "", src)
    last_install = try_string(
        updates, "LastInstallDate", "lastInstallDate", "LastUpdateDate", "lastUpdateDate", "LastInstalled"
    )
    if last_install:
        group["lastInstallDate"] = create_available(last_install, "", src)
    pending_list = try_list(updates, "PendingUpdates", "pendingUpdates", "updates")
    if pending_list:
        group["pendingUpdatesCount"] = count_metric(len(pending_list), src)
    reboot = try_bool(updates, *REBOOT_ALIASES)
    if reboot is not None:
        group["rebootRequired"] = create_available(reboot, "bool", src)
    return group


def map_startup(sections: Mapping) -> MetricGroup:
    startup = _data(sections, "StartupPrograms", "Startup", "StartupInfo")
    if startup is None:
        return {}
    count = high_impact = 0
    if isinstance(startup, list):
        count = len(startup)
        for item in startup:
            impact = try_string(item, "StartupImpact")
            if impact and impact.lower() == "high":
                high_impact += 1
    else:
        items = get_value(startup, "Items", "startupItems", "StartupItems", "items", "list")
        if items is not None:
            if isinstance(items, list):
                count = len(items)
        else:
            count = try_int(startup, "startupCount", "StartupCount", "count", "total", "Total") or 0
    return {
        "totalCount": count_metric(count, "PS/StartupPrograms"),
        "highImpactCount": count_metric(high_impact, "PS/StartupPrograms"),
    }


def map_devices(sections: Mapping) -> MetricGroup:
    devices = _data(sections, "DevicesDrivers", "Devices", "PnPDevices")
    if devices is None:
        return {}
    total = problems = 0
    device_list = devices if isinstance(devices, list) else try_list(devices, "Devices", "devices", "items", "list")
    for dev in device_list or []:
        total += 1
        status = try_string(dev, "Status")
        if status is not None and status.upper() != "OK":
            problems += 1

    explicit_total = try_int(
        devices, "deviceCount", "DeviceCount", "totalDevices", "TotalDevices", "total", "Total"
    )
    if explicit_total is not None:
        total = explicit_total
    explicit_problems = try_int(
        devices, "problemDeviceCount", "ProblemDeviceCount", "problemCount", "ProblemCount", "errorCount", "ErrorCount"
    )
    if explicit_problems is not None:
        problems = explicit_problems

    src = "PS/DevicesDrivers"
    return {
        "totalDevices": count_metric(total, src),
        "problemDevices": count_metric(problems, src),
        "outdatedDrivers": count_metric(0, src),
    }


def map_boot(sections: Mapping) -> MetricGroup:
    group: MetricGroup = {}
    perf = _data(sections, "PerformanceCounters")
    if perf is not None:
        group["bootTimeSeconds"] = number_metric(perf, "BootTimeSeconds", "s", "PS/PerformanceCounters")
        group["loginTimeSeconds"] = number_metric(perf, "LoginTimeSeconds", "s", "PS/PerformanceCounters")
    signals = _data(sections, "DynamicSignals")
    boot = try_mapping(signals, "BootPerformance") if signals is not None else None
    if boot is not None:
        group["fullBootMs"] = number_metric(boot, "FullBootMs", "ms", "PS/DynamicSignals")
        group["mainPathMs"] = number_metric(boot, "MainPathMs", "ms", "PS/DynamicSignals")
    return group


@dataclass(frozen=True)
class SectionMapper:
    group: str
    aliases: Tuple[str, ...]
    build: Callable[[Mapping], MetricGroup]


# priority sections first, context sections after
SECTION_MAPPERS: Tuple[SectionMapper, ...] = (
    SectionMapper("os", ("OS",), map_os),
    SectionMapper("memory", ("Memory", "MemoryInfo"), map_memory),
    SectionMapper("security", ("Security",), map_security),
    SectionMapper("stability", ("Stability", "EventLogs", "ReliabilityHistory"), map_stability),
    SectionMapper("storage", ("Storage",), map_storage_extras),
    SectionMapper("network", ("Network", "NetworkLatency"), map_network),
    SectionMapper("updates", ("WindowsUpdate", "Updates", "WindowsUpdateInfo"), map_updates),
    SectionMapper("startup", ("StartupPrograms", "Startup", "StartupInfo"), map_startup),
    SectionMapper("devices", ("DevicesDrivers", "Devices", "PnPDevices"), map_devices),
    SectionMapper("boot", ("Boot", "PerformanceCounters", "DynamicSignals"), map_boot),
)


# ---- summaries ----

def build_external_summary(sections: Mapping) -> Optional[ExternalSummary]:
    """Compact view of the context sections; None when nothing was found."""
    summary = ExternalSummary()
    has_any = False

    updates = _data(sections, "WindowsUpdate", "Updates", "WindowsUpdateInfo")
    if updates is not None:
        summary.updates = UpdatesSummary(
            pending_count=try_int(updates, *PENDING_ALIASES),
            reboot_required=try_bool(updates, *REBOOT_ALIASES),
            last_update=try_string(
                updates, "lastUpdateDate", "LastUpdateDate", "lastInstallDate",
                "LastInstallDate", "LastInstalled", "LastCheck",
            ),
        )
        u = summary.updates
        has_any |= any(v is not None for v in (u.pending_count, u.reboot_required, u.last_update))

    startup = _data(sections, "StartupPrograms", "Startup", "StartupInfo")
    if startup is not None:
        summary.startup = _inventory(
            startup,
            ("startupCount", "StartupCount", "count", "total", "Total"),
            ("startupItems", "StartupItems", "items", "list", "apps", "programs"),
            ("name", "Name", "DisplayName", "Command"),
            limit=10,
        )
        has_any |= _has_content(summary.startup)

    apps = _data(sections, "InstalledApplications", "Applications")
    if apps is not None:
        summary.applications = ApplicationsSummary(
            installed_count=try_int(
                apps, "totalCount", "TotalCount", "installedCount", "InstalledCount", "count", "total"
            ),
            last_installed=try_string(
                apps, "lastInstallDate", "LastInstallDate", "lastInstalled", "LastInstalled"
            ),
        )
        a = summary.applications
        has_any |= a.installed_count is not None or a.last_installed is not None

    devices = _data(sections, "DevicesDrivers", "Devices", "PnPDevices")
    if devices is not None:
        summary.problem_devices = _inventory(
            devices,
            ("problemDeviceCount", "ProblemDeviceCount", "problemCount", "ProblemCount", "errorCount", "ErrorCount"),
            ("problemDevices", "ProblemDevices", "errors", "Errors"),
            ("name", "Name", "deviceName", "DeviceName"),
        )
        has_any |= _has_content(summary.problem_devices)

    printers = _data(sections, "Printers", "PrinterInfo")
    if printers is not None:
        summary.printers = _inventory(
            printers,
            ("printerCount", "PrinterCount", "count", "total"),
            ("printers", "Printers", "items", "list"),
            ("name", "Name", "printerName", "PrinterName"),
        )
        has_any |= _has_content(summary.printers)

    audio = _data(sections, "Audio", "AudioDevices")
    if audio is not None:
        summary.audio = _inventory(
            audio,
            ("deviceCount", "DeviceCount", "count", "total"),
            ("devices", "Devices", "items", "list"),
            ("name", "Name", "deviceName", "DeviceName"),
        )
        has_any |= _has_content(summary.audio)

    return summary if has_any else None


def _inventory(data, count_aliases, list_aliases, name_aliases, limit: int = 5) -> InventorySummary:
    return InventorySummary(
        count=try_int(data, *count_aliases),
        names=_names(try_list(data, *list_aliases), name_aliases, limit),
    )


def _has_content(inv: InventorySummary) -> bool:
    return inv.count is not None or bool(inv.names)


def enrich_machine_info(machine: MachineInfo, sections: Mapping) -> Dict[str, Any]:
    """Fill machine identity fields in place; returns the fields that were set."""
    changed: Dict[str, Any] = {}

    identity = _data(sections, "MachineIdentity")
    if identity is not None:
        hostname = try_string(identity, "ComputerName")
        if hostname:
            changed["hostname"] = hostname
        changed["cpu_name"] = try_string(identity, "ProcessorName")
        changed["total_ram_gb"] = try_float(identity, "TotalRAM_GB", "TotalRamGB", "TotalRAM")

    os_data = _data(sections, "OS")
    if os_data is not None:
        changed["os_version"] = try_string(os_data, "Caption", "OSName")
        changed["os_build"] = try_string(os_data, "BuildNumber", "Version")
        changed["install_date"] = try_string(os_data, "InstallDate")
        changed["last_boot_time"] = try_string(os_data, "LastBootUpTime")
        changed["architecture"] = try_string(os_data, "OSArchitecture")
        changed["uptime"] = try_string(os_data, "Uptime")

    for name, value in changed.items():
        setattr(machine, name, value)
    return changed
