"""Package catalog parsing and skip-list filtering."""

from typing import Any, Dict, Iterable, List, Optional, Sequence

from wingetupgrader.models import CatalogResult, PackageRecord

_FIELD_ALIASES = {
    "identifier": ("Id", "id", "identifier", "PackageIdentifier"),
    "name": ("Name", "name"),
    "installed_version": ("InstalledVersion", "installed_version", "Version", "version"),
    "available_version": ("AvailableVersion", "available_version", "Available", "available"),
}


class PackageCatalogService:
    """Turns raw query rows into records and applies the skip list."""

    def __init__(self, logger):
        self.logger = logger

    def parse(self, rows: Iterable[Dict[str, Any]]) -> List[PackageRecord]:
        records = []
        for row in rows:
            identifier = _lookup(row, "identifier")
            record = PackageRecord(
                identifier=identifier or None,
                name=_lookup(row, "name"),
                installed_version=_lookup(row, "installed_version"),
                available_version=_lookup(row, "available_version"),
            )
            if not record.is_actionable:
                self.logger.warning("Package '%s' has no identifier and cannot be upgraded.", record.label)
            records.append(record)
        return records

    def filter(self, records: Sequence[PackageRecord], skip_ids: Iterable[str]) -> CatalogResult:
        skip = {skip_id.casefold() for skip_id in skip_ids}
        kept = []
        for record in records:
            if record.identifier and record.identifier.casefold() in skip:
                self.logger.info("Skipping %s (listed in skip_list).", record.identifier)
                continue
            kept.append(record)

        result = CatalogResult(
            records=tuple(kept),
            raw_count=len(records),
            skipped_count=len(records) - len(kept),
        )

        if result.raw_count == 0:
            self.logger.info("The package query returned no upgradeable packages.")
        elif result.is_empty:
            self.logger.info("All %s upgradeable package(s) were skipped.", result.raw_count)
        else:
            self.logger.info(
                "%s package(s) available after skipping %s.",
                len(result.records),
                result.skipped_count,
            )
        return result


def _lookup(row: Dict[str, Any], field_name: str) -> str:
    value: Optional[Any] = None
    for alias in _FIELD_ALIASES[field_name]:
        if row.get(alias) is not None:
            value = row[alias]
            break
    if value is None:
        return ""
    return str(value).strip()
