"""
Import orchestration: map -> parse -> validate -> (commit).

Preview and import share every step up to validation; only import hands
clean records to the record store and saves confirmed mappings.
"""
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import inspect
from sqlalchemy.orm import Session

from payroll_import.core.exceptions import (
    ConfigurationConflictError,
    PayrollImportError,
    UnknownFieldError,
    WorkbookFormatError,
)
from payroll_import.core.logging_config import logger
from payroll_import.crud.mapping_configuration import mapping_configuration_crud
from payroll_import.models.mapping_configuration import MappingConfiguration
from payroll_import.schemas.column_mapping import ColumnMapping
from payroll_import.schemas.payroll_import import ImportOptions, ImportResult, PayrollRecord
from payroll_import.services.collaborators import (
    EmployeeDirectory,
    PayrollRecordStore,
    SqlEmployeeDirectory,
    SqlPayrollRecordStore,
)
from payroll_import.services.column_alias import column_alias_service
from payroll_import.services.column_detector import detect_columns
from payroll_import.services.mapping_configuration import mapping_configuration_service
from payroll_import.services.payroll_parser import ParseResult, WorkbookUpload, parse_files
from payroll_import.services.field_schema import get_field
from payroll_import.services.reporting import build_import_result, record_key
from payroll_import.services.validation import persistence_findings, validate


class PayrollImportService:
    """Runs an import batch against the database collaborators"""
    
    def resolve_mappings(
        self,
        db: Session,
        uploads: Sequence[WorkbookUpload],
        options: ImportOptions
    ) -> Tuple[List[ColumnMapping], Optional[int]]:
        """
        Mapping to parse each file with.
        
        Explicit per-file or shared mappings win; otherwise each file gets
        the suggestion of the selected (or default) configuration, falling
        back to auto-mapping.
        """
        if options.file_mappings is not None:
            if len(options.file_mappings) != len(uploads):
                raise ValueError(
                    f"Expected {len(uploads)} file mappings (one per file), got {len(options.file_mappings)}"
                )
            return [ColumnMapping.from_dict(m) for m in options.file_mappings], options.config_id
        
        shared = options.shared_mapping()
        if shared is not None:
            return [shared] * len(uploads), options.config_id
        
        mappings = []
        config_id = options.config_id
        for upload in uploads:
            try:
                columns = detect_columns(upload.content, upload.filename)
            except WorkbookFormatError:
                # The parser reports this file; any mapping will do
                mappings.append(ColumnMapping())
                continue
            suggested, config_id = mapping_configuration_service.suggest_mapping(
                db, columns, config_id=options.config_id
            )
            mappings.append(suggested.mapping)
        return mappings, config_id
    
    def _parse_and_validate(
        self,
        db: Session,
        uploads: Sequence[WorkbookUpload],
        options: ImportOptions,
        directory: Optional[EmployeeDirectory]
    ):
        mappings, config_id = self.resolve_mappings(db, uploads, options)
        parsed = parse_files(uploads, mappings)
        report = validate(
            parsed.records,
            directory or SqlEmployeeDirectory(db),
            files_processed=parsed.files_processed,
        )
        return mappings, config_id, parsed, report
    
    def preview(
        self,
        db: Session,
        uploads: Sequence[WorkbookUpload],
        options: ImportOptions,
        directory: Optional[EmployeeDirectory] = None
    ) -> Tuple[ImportResult, ParseResult]:
        """Parse and validate without writing anything"""
        _, config_id, parsed, report = self._parse_and_validate(db, uploads, options, directory)
        return build_import_result(parsed, report.findings, config_id=config_id), parsed
    
    def _stage_configuration(
        self,
        db: Session,
        uploads: Sequence[WorkbookUpload],
        options: ImportOptions,
        mapping: ColumnMapping
    ) -> MappingConfiguration:
        source = uploads[0].filename if uploads else None
        return mapping_configuration_service.stage_configuration(
            db,
            name=options.configuration_name or mapping_configuration_service.generate_name(db, source),
            field_mappings=mapping.field_mappings(),
            is_default=options.set_default,
            description=f"Saved during import of {source}" if source else None,
            created_by=options.created_by,
        )
    
    def run_import(
        self,
        db: Session,
        uploads: Sequence[WorkbookUpload],
        options: ImportOptions,
        directory: Optional[EmployeeDirectory] = None,
        store: Optional[PayrollRecordStore] = None
    ) -> Tuple[ImportResult, ParseResult]:
        """
        Parse, validate and commit every record that has no finding.
        
        The mapping is saved as a configuration and the reviewer-supplied
        assignments are learned as aliases only when the options ask for
        it. Configuration, aliases and records are committed together, so a
        rejected configuration leaves no payroll rows behind.
        """
        confirmed = options.confirmed_field_mappings() if options.learn_aliases else []
        for field_mapping in confirmed:
            if get_field(field_mapping.field_key) is None:
                raise UnknownFieldError(field_mapping.field_key)
        if options.save_configuration and options.configuration_name:
            if mapping_configuration_crud.get_by_name(db, options.configuration_name):
                raise ConfigurationConflictError(options.configuration_name.strip())
        
        mappings, config_id, parsed, report = self._parse_and_validate(db, uploads, options, directory)
        
        config = None
        try:
            if options.save_configuration and mappings:
                config = self._stage_configuration(db, uploads, options, mappings[0])
            if confirmed:
                column_alias_service.stage_learned_aliases(
                    db,
                    confirmed,
                    created_by=options.created_by,
                    config_id=config.id if config is not None else None,
                )
        except (PayrollImportError, ValueError):
            db.rollback()
            raise
        
        flagged = {record_key(f.file_index, f.source_file, f.row) for f in report.findings}
        clean: List[PayrollRecord] = [
            record for record in parsed.records
            if record_key(record.file_index, record.source_file, record.source_row) not in flagged
        ]
        outcomes = (store or SqlPayrollRecordStore(db)).save(clean) if clean else []
        # Publishes the staged configuration and aliases when the store did not commit
        db.commit()
        findings = report.findings + persistence_findings(outcomes)
        committed = sum(1 for outcome in outcomes if outcome.saved)
        
        if config is not None:
            if inspect(config).persistent:
                config_id = config.id
            else:
                logger.error("Import batch was rolled back; mapping configuration not saved")
        
        result = build_import_result(parsed, findings, committed_count=committed, config_id=config_id)
        logger.info(
            f"Import finished: {committed}/{parsed.total_rows} records committed, "
            f"{len(findings)} findings, {len(parsed.file_errors)} unreadable files"
        )
        return result, parsed


payroll_import_service = PayrollImportService()
