from __future__ import annotations

import logging

from salesconfig.moduleconfig.schemas import (
    LEAD_PROGRESS_FIELD,
    ConfigField,
    DispositionEntry,
    ModuleConfig,
    ProgressValue,
    SubDispositionEntry,
)


logger = logging.getLogger("salesconfig.leadstatus.engine")


class StatusResolutionEngine:
    """Map (progress, disposition, sub-disposition) to a status bucket using a module config.

    Every failed lookup yields ``None``: a missing mapping is an ordinary outcome for a
    partially configured tenant and callers leave the lead's status unchanged.
    Empty strings for disposition or sub-disposition are treated as not supplied.
    """

    def __init__(self, field_name: str = LEAD_PROGRESS_FIELD) -> None:
        self._field_name = field_name

    def determine_bucket(
        self,
        config: ModuleConfig,
        progress: str,
        disposition: str | None = None,
        sub_disposition: str | None = None,
    ) -> str | None:
        progress_field = config.find_field(self._field_name)
        if progress_field is None:
            logger.warning(
                "lead_status.progress_field_missing",
                extra={"module_id": config.module_id, "project_id": config.project_id, "config_name": config.config_name},
            )
            return None

        progress_value = self._find_progress_value(progress_field, progress)
        if progress_value is None:
            logger.warning("lead_status.progress_not_configured", extra={"module_id": config.module_id, "progress": progress})
            return None

        if not disposition:
            logger.debug("lead_status.disposition_missing", extra={"progress": progress})
            return None

        disposition_entry = self._find_disposition(progress_value, disposition)
        if disposition_entry is None:
            logger.warning(
                "lead_status.disposition_not_configured",
                extra={"progress": progress, "disposition": disposition},
            )
            return None

        sub_entry = self._find_sub_disposition(disposition_entry, sub_disposition)
        if sub_entry is None:
            logger.warning(
                "lead_status.sub_disposition_not_configured",
                extra={"progress": progress, "disposition": disposition, "sub_disposition": sub_disposition},
            )
            return None

        bucket = sub_entry.bucket or None
        logger.debug(
            "lead_status.bucket_determined",
            extra={
                "progress": progress,
                "disposition": disposition,
                "sub_disposition": sub_disposition,
                "bucket": bucket,
            },
        )
        return bucket

    @staticmethod
    def _find_progress_value(progress_field: ConfigField, progress: str) -> ProgressValue | None:
        return next((value for value in progress_field.values if value.display_name == progress), None)

    @staticmethod
    def _find_disposition(progress_value: ProgressValue, disposition: str) -> DispositionEntry | None:
        return next((entry for entry in progress_value.dispositions if entry.name == disposition), None)

    @staticmethod
    def _find_sub_disposition(entry: DispositionEntry, sub_disposition: str | None) -> SubDispositionEntry | None:
        # A supplied sub-disposition must match exactly; the default entry only answers when none is given.
        if sub_disposition:
            return next((sub for sub in entry.sub_dispositions if sub.name == sub_disposition), None)
        return next((sub for sub in entry.sub_dispositions if sub.is_default), None)


status_resolution_engine = StatusResolutionEngine()


def determine_bucket(
    config: ModuleConfig,
    progress: str,
    disposition: str | None = None,
    sub_disposition: str | None = None,
) -> str | None:
    return status_resolution_engine.determine_bucket(config, progress, disposition, sub_disposition)
