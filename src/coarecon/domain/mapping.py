"""Column mapping sets and their validation against staged jobs."""

from typing import Iterable, Iterator, Optional

from coarecon.domain.entities import ColumnMapping, ImportKind, MappingField, StagedImportJob
from coarecon.domain.errors import (
    DuplicateMappingError,
    IncompleteMappingError,
    UnknownColumnError,
    UnknownFieldError,
)
from coarecon.domain.mapping_fields import get_catalog
from coarecon.domain.staging import StagingService


class ColumnMappingSet:
    """Mappings keyed by target field.

    Assigning a target field that is already mapped replaces the earlier
    source column (last write wins). Replaced target fields are remembered in
    ``overwritten`` so that a strict caller can reject them.
    """

    def __init__(self, mappings: Iterable[ColumnMapping] = ()):
        self._by_target: dict[str, ColumnMapping] = {}
        self.overwritten: list[str] = []
        for mapping in mappings:
            self.assign(mapping)

    def assign(self, mapping: ColumnMapping) -> Optional[ColumnMapping]:
        """Map a target field, returning the mapping it replaced, if any."""
        previous = self._by_target.get(mapping.target_field)
        if previous is not None and mapping.target_field not in self.overwritten:
            self.overwritten.append(mapping.target_field)
        self._by_target[mapping.target_field] = mapping
        return previous

    def remove(self, target_field: str) -> None:
        self._by_target.pop(target_field, None)

    def source_for(self, target_field: str) -> Optional[str]:
        mapping = self._by_target.get(target_field)
        return mapping.source_column if mapping else None

    @property
    def target_fields(self) -> set[str]:
        return set(self._by_target)

    def __contains__(self, target_field: object) -> bool:
        return target_field in self._by_target

    def __iter__(self) -> Iterator[ColumnMapping]:
        return iter(self._by_target.values())

    def __len__(self) -> int:
        return len(self._by_target)

    def project(self, row: dict[str, str]) -> dict[str, str]:
        """Return {target_field: raw cell value} for one staged row."""
        return {m.target_field: row.get(m.source_column, "") for m in self}


def suggested_mappings(job: StagedImportJob) -> ColumnMappingSet:
    """Build the initial mapping set from the staging suggestions."""
    catalog = {f.field_name: f for f in get_catalog(job.import_kind)}
    mappings = ColumnMappingSet()
    for column in job.detected_columns:
        target = column.suggested_target_field
        if target in catalog:
            mappings.assign(ColumnMapping(column.column_name, target, catalog[target].is_required))
    return mappings


class MappingResolver:
    """Validates caller-supplied column mappings before import."""

    def __init__(self, staging_service: StagingService):
        """Initialize mapping resolver.

        Args:
            staging_service: Source of live staged jobs
        """
        self.staging_service = staging_service

    def get_mapping_fields(
        self, kind: ImportKind = ImportKind.CHART_OF_ACCOUNTS
    ) -> list[MappingField]:
        """Return the importable target fields for a scope."""
        return list(get_catalog(kind))

    def resolve(self, job_id: str, mappings: Iterable[ColumnMapping]) -> ColumnMappingSet:
        """Validate mappings against a staged job.

        Args:
            job_id: Staged job the mappings apply to
            mappings: Caller-supplied column mappings

        Returns:
            The mappings keyed by target field, with ``is_required`` taken
            from the catalog

        Raises:
            NotFoundError: If the job is unknown or expired
            UnknownColumnError: If a source column was not detected
            UnknownFieldError: If a target field is not in the catalog
            DuplicateMappingError: If a target field is mapped twice
            IncompleteMappingError: If a required field is not mapped
        """
        job = self.staging_service.get_job(job_id)
        return self.validate(job, mappings)

    def validate(self, job: StagedImportJob, mappings: Iterable[ColumnMapping]) -> ColumnMappingSet:
        """Validate mappings against an already loaded job."""
        catalog = {f.field_name: f for f in get_catalog(job.import_kind)}
        columns = set(job.column_names)

        mappings = list(mappings)
        unknown_columns = sorted({m.source_column for m in mappings} - columns)
        if unknown_columns:
            raise UnknownColumnError(
                f"Unknown source columns: {', '.join(unknown_columns)}. "
                f"Detected columns: {', '.join(job.column_names)}"
            )
        unknown_fields = sorted({m.target_field for m in mappings} - set(catalog))
        if unknown_fields:
            raise UnknownFieldError(
                f"Unknown target fields: {', '.join(unknown_fields)}. "
                f"Must be one of: {', '.join(catalog)}"
            )

        resolved = ColumnMappingSet(
            ColumnMapping(m.source_column, m.target_field, catalog[m.target_field].is_required)
            for m in mappings
        )
        if resolved.overwritten:
            raise DuplicateMappingError(
                f"Target fields mapped more than once: {', '.join(sorted(resolved.overwritten))}"
            )

        missing = [name for name, f in catalog.items() if f.is_required and name not in resolved]
        if missing:
            raise IncompleteMappingError(missing)
        return resolved
