"""Migration orchestrator - coordinates the complete migration process."""

import logging
import uuid
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from .config import DEFAULT_LEGACY_IMAGE_BASE_URL, MigrationSettings
from .errors import DuplicateRowError, MissingReferenceError, RowError, TableMissingError
from .extractors.base import LEGACY_JUNCTIONS, BaseReader, Row
from .extractors.mysql_reader import LegacyReader
from .loaders.base import BaseTargetStore
from .loaders.schema import ENTITY_TABLES, row_values
from .loaders.sql_store import SqlTargetStore
from .models.entities import ContentBlockRecord, EntityKind, REFERENCE_KINDS
from .models.run import MigrationRunResult, MigrationStatus, Stage, STAGE_ORDER
from .services.id_mapping import IdMappingRegistry
from .services.image_migrator import ImageMigrator
from .services.mapper import (
    REFERENCE_LABELS,
    map_content_block,
    map_hosting,
    map_reference,
    map_tariff,
)
from .services.reporter import RunReporter
from .storage.s3_storage import S3ObjectStorage

logger = logging.getLogger(__name__)

NaturalKey = Dict[str, Any]


class MigrationOrchestrator:
    """
    Orchestrates the complete migration process.

    Handles:
    - Connection checks against both stores
    - Strictly ordered stages: references, hostings, images, tariffs,
      tariff relations, content blocks
    - Create-or-reuse by natural key, so re-runs converge
    - Row-level error isolation
    - Dry-run (no writes, simulated identifiers)
    - Persisting the run result
    """

    def __init__(
        self,
        source: BaseReader,
        target: BaseTargetStore,
        image_migrator: Optional[ImageMigrator] = None,
        reporter: Optional[RunReporter] = None,
        dry_run: bool = False,
        skip_images: bool = False,
        legacy_image_base_url: str = DEFAULT_LEGACY_IMAGE_BASE_URL,
    ):
        """
        Initialize the orchestrator.

        Args:
            source: Reader for the legacy store
            target: Target catalog store
            image_migrator: Image pipeline; leave unset when images are skipped
            reporter: Persists the run result when the run ends
            dry_run: Map and validate without writing anything
            skip_images: Omit the images stage
            legacy_image_base_url: Prefix for relative legacy logo paths
        """
        self.source = source
        self.target = target
        self.image_migrator = image_migrator
        self.reporter = reporter
        self.dry_run = dry_run
        self.skip_images = skip_images
        self.legacy_image_base_url = legacy_image_base_url.rstrip("/")

        self.registry = IdMappingRegistry()
        self.result = MigrationRunResult(dry_run=dry_run, skipped_images=skip_images)

        # Records "created" during a dry run, by natural key
        self._simulated: Dict[Tuple[EntityKind, Tuple], str] = {}
        self._simulated_links: set = set()

        self._stages: Dict[Stage, Callable[[], None]] = {
            Stage.REFERENCES: self._migrate_references,
            Stage.HOSTINGS: self._migrate_hostings,
            Stage.IMAGES: self._migrate_images,
            Stage.TARIFFS: self._migrate_tariffs,
            Stage.TARIFF_RELATIONS: self._migrate_tariff_relations,
            Stage.CONTENT_BLOCKS: self._migrate_content_blocks,
        }

    @classmethod
    def from_settings(
        cls,
        settings: MigrationSettings,
        dry_run: bool = False,
        skip_images: bool = False,
    ) -> "MigrationOrchestrator":
        """
        Build an orchestrator with production collaborators.

        Object storage and the image pipeline are only constructed when
        images are not skipped.
        """
        image_migrator = None
        if not skip_images:
            image_migrator = ImageMigrator(S3ObjectStorage.from_settings(settings))

        return cls(
            source=LegacyReader.from_settings(settings),
            target=SqlTargetStore.from_settings(settings),
            image_migrator=image_migrator,
            reporter=RunReporter(settings.output_dir),
            dry_run=dry_run,
            skip_images=skip_images,
            legacy_image_base_url=settings.legacy_image_base_url,
        )

    def run_migration(self) -> MigrationRunResult:
        """
        Run the complete migration.

        Returns:
            MigrationRunResult with statistics, mappings and row errors

        Raises:
            MigrationError: On a fatal error; the partial result is still saved
        """
        result = self.result
        result.status = MigrationStatus.RUNNING
        mode = "DRY RUN" if self.dry_run else "LIVE"
        logger.info(f"=== MIGRATION {result.id} STARTED ({mode}) ===")

        try:
            self.source.ping()
            self.target.ping()

            for stage in STAGE_ORDER:
                result.current_stage = stage
                logger.info(f"=== STAGE: {stage.value.upper()} ===")
                self._stages[stage]()

            result.current_stage = None
            if result.errors:
                result.status = MigrationStatus.COMPLETED_WITH_ERRORS
            else:
                result.status = MigrationStatus.COMPLETED
            logger.info("=== MIGRATION COMPLETED ===")

        except Exception as e:
            logger.error(f"Migration failed: {e}")
            result.status = MigrationStatus.FAILED
            stage = result.current_stage.value if result.current_stage else "startup"
            result.add_error("migration", stage, str(e))
            raise

        finally:
            result.completed_at = datetime.utcnow()
            result.mappings = self.registry.snapshot()
            try:
                if self.reporter:
                    self._save_result(result)
            finally:
                self.close()

        return result

    def _save_result(self, result: MigrationRunResult) -> None:
        """Persist and summarize the run; a failed write never masks the run outcome."""
        try:
            self.reporter.save(result)
        except OSError as e:
            logger.error(f"Failed to save migration result: {e}")
        self.reporter.log_summary(result)

    def close(self) -> None:
        """Release both store connections."""
        try:
            self.source.close()
        finally:
            self.target.close()

    # ------------------------------------------------------------------
    # Shared row handling
    # ------------------------------------------------------------------

    def _read(self, description: str, fetch: Callable[[], List[Row]]) -> List[Row]:
        """Run a source read, treating a missing legacy table as zero rows."""
        try:
            rows = fetch()
        except TableMissingError as e:
            logger.warning(f"{e}, migrating 0 {description}")
            return []
        logger.info(f"Found {len(rows)} {description}")
        return rows

    def _process_rows(
        self,
        stage: str,
        label: str,
        rows: List[Row],
        handle: Callable[[Row], None],
    ) -> None:
        """Apply ``handle`` to each row, recording row-level failures and moving on."""
        for row in rows:
            try:
                handle(row)
            except RowError as e:
                subject = f"{label} ID {row.get('id')}"
                logger.error(f"[{stage}] {subject}: {e}")
                self.result.add_error(stage, subject, str(e))

    @staticmethod
    def _key(kind: EntityKind, natural_key: NaturalKey) -> Tuple[EntityKind, Tuple]:
        return kind, tuple(sorted(natural_key.items()))

    def _find_existing(self, kind: EntityKind, natural_key: NaturalKey) -> Optional[str]:
        if self.dry_run:
            simulated = self._simulated.get(self._key(kind, natural_key))
            if simulated:
                return simulated
        return self.target.find_id(kind, **natural_key)

    def _create_or_reuse(
        self,
        kind: EntityKind,
        legacy_id: Any,
        natural_key: NaturalKey,
        record: Any,
        label: Optional[str] = None,
    ) -> Tuple[str, bool]:
        """
        Reuse the record matching ``natural_key`` or create a new one.

        Args:
            kind: Entity kind
            legacy_id: Legacy primary key of the row
            natural_key: Columns identifying the record in the target store
            record: Mapped record to insert when nothing matches
            label: When set, a match already claimed by another legacy row in
                this run is a ``DuplicateRowError`` instead of a reuse

        Returns:
            Tuple of (identifier, created)
        """
        existing = self._find_existing(kind, natural_key)
        if existing:
            owner = self.registry.legacy_id_for(kind, existing)
            if label and legacy_id is not None and owner is not None and owner != int(legacy_id):
                raise DuplicateRowError(label, legacy_id, owner)
            if legacy_id is not None:
                self.registry.set(kind, legacy_id, existing)
            logger.debug(f"{kind.value} {natural_key} already exists as {existing}")
            return existing, False

        new_id = str(uuid.uuid4())
        if self.dry_run:
            self._simulated[self._key(kind, natural_key)] = new_id
        else:
            self.target.create(kind, new_id, row_values(ENTITY_TABLES[kind], record))

        if legacy_id is not None:
            self.registry.set(kind, legacy_id, new_id)
        return new_id, True

    def _absolute_logo_url(self, logo_url: Optional[str]) -> Optional[str]:
        if not logo_url or logo_url.startswith(("http://", "https://")):
            return logo_url
        return f"{self.legacy_image_base_url}/{logo_url.lstrip('/')}"

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _migrate_references(self) -> None:
        for kind in REFERENCE_KINDS:
            stage = f"{Stage.REFERENCES.value}.{kind.value}"
            label = REFERENCE_LABELS[kind]
            rows = self._read(f"{kind.value} records", lambda: self.source.fetch_entities(kind))

            def handle(row: Row, kind: EntityKind = kind) -> None:
                record = map_reference(kind, row)
                _, created = self._create_or_reuse(kind, record.legacy_id, {"slug": record.slug}, record)
                if created:
                    self.result.statistics.references[kind.value] += 1

            self._process_rows(stage, label, rows, handle)
            logger.info(f"{kind.value}: {self.result.statistics.references[kind.value]} created")

    def _migrate_hostings(self) -> None:
        stage = Stage.HOSTINGS.value
        logos = self._read_hosting_logos()
        rows = self._read("hostings", lambda: self.source.fetch_entities(EntityKind.HOSTING))

        def handle(row: Row) -> None:
            record = map_hosting(row)
            if record.legacy_id is not None and int(record.legacy_id) in logos:
                record.logo_url = logos[int(record.legacy_id)]
            else:
                record.logo_url = self._absolute_logo_url(record.logo_url)

            _, created = self._create_or_reuse(
                EntityKind.HOSTING, record.legacy_id, {"slug": record.slug}, record
            )
            if created:
                self.result.statistics.hostings += 1

        self._process_rows(stage, "Hosting", rows, handle)
        logger.info(f"hostings: {self.result.statistics.hostings} created")

    def _read_hosting_logos(self) -> Dict[int, str]:
        try:
            return self.source.fetch_hosting_logos(self.legacy_image_base_url)
        except TableMissingError as e:
            logger.warning(f"{e}, using logo URLs from hosting rows")
            return {}

    def _migrate_images(self) -> None:
        if self.dry_run:
            logger.info("Dry run: skipping image migration")
            return
        if self.skip_images or self.image_migrator is None:
            logger.info("Skipping image migration")
            return

        stage = Stage.IMAGES.value
        migrated_prefix = self.image_migrator.storage.base_url
        hostings = self.target.hostings_with_logo()
        logger.info(f"Found {len(hostings)} hostings with logos")

        for hosting in hostings:
            slug = hosting["slug"]
            logo_url = hosting["logo_url"]
            if logo_url.startswith(migrated_prefix):
                logger.debug(f"Logo for {slug} already migrated")
                continue

            try:
                new_url = self.image_migrator.migrate(logo_url, slug)
                self.target.update(
                    EntityKind.HOSTING,
                    hosting["id"],
                    {"logo_url": new_url, "updated_at": datetime.utcnow()},
                )
                self.result.statistics.images += 1
            except RowError as e:
                subject = f"Hosting {slug}"
                logger.error(f"[{stage}] {subject}: {e}")
                self.result.add_error(stage, subject, str(e))

        logger.info(f"images: {self.result.statistics.images} migrated")

    def _migrate_tariffs(self) -> None:
        stage = Stage.TARIFFS.value
        rows = self._read("tariffs", lambda: self.source.fetch_entities(EntityKind.TARIFF))

        def handle(row: Row) -> None:
            legacy_hosting_id = row.get("hosting_id")
            hosting_id = self.registry.get(EntityKind.HOSTING, legacy_hosting_id)
            if not hosting_id:
                raise MissingReferenceError("Hosting", legacy_hosting_id)

            record = map_tariff(row, hosting_id=hosting_id)
            natural_key = {
                "hosting_id": hosting_id,
                "name": record.name,
                "period": record.period.value,
                "price": record.price,
            }
            _, created = self._create_or_reuse(
                EntityKind.TARIFF, record.legacy_id, natural_key, record, label="Tariff"
            )
            if created:
                self.result.statistics.tariffs += 1

        self._process_rows(stage, "Tariff", rows, handle)
        logger.info(f"tariffs: {self.result.statistics.tariffs} created")

    def _migrate_tariff_relations(self) -> None:
        for kind in REFERENCE_KINDS:
            stage = f"{Stage.TARIFF_RELATIONS.value}.{kind.value}"
            _, column = LEGACY_JUNCTIONS[kind]
            rows = self._read(
                f"tariff/{kind.value} links", lambda: self.source.fetch_tariff_links(kind)
            )

            def handle(row: Row, kind: EntityKind = kind, column: str = column) -> None:
                tariff_id = self.registry.get(EntityKind.TARIFF, row.get("tariff_id"))
                reference_id = self.registry.get(kind, row.get(column))
                if not tariff_id or not reference_id:
                    logger.warning(
                        f"Skipping tariff {row.get('tariff_id')} -> {kind.value} "
                        f"{row.get(column)}: not found in mapping"
                    )
                    return

                if self.dry_run:
                    pair = (kind, tariff_id, reference_id)
                    created = pair not in self._simulated_links
                    self._simulated_links.add(pair)
                else:
                    created = self.target.link(kind, tariff_id, reference_id)

                if created:
                    self.result.statistics.tariff_relations[kind.value] += 1

            self._process_rows(stage, "TariffRelation", rows, handle)
            logger.info(
                f"tariff_relations.{kind.value}: "
                f"{self.result.statistics.tariff_relations[kind.value]} created"
            )

    def _migrate_content_blocks(self) -> None:
        stage = Stage.CONTENT_BLOCKS.value
        rows = self._read(
            "content blocks", lambda: self.source.fetch_entities(EntityKind.CONTENT_BLOCK)
        )

        def handle(row: Row) -> None:
            record = map_content_block(row)
            if record.legacy_hosting_id is not None:
                record.hosting_id = self.registry.get(EntityKind.HOSTING, record.legacy_hosting_id)
                if not record.hosting_id:
                    logger.warning(
                        f"ContentBlock {record.key}: hosting {record.legacy_hosting_id} "
                        "not found in mapping, leaving it unlinked"
                    )

            block_id, created = self._create_or_reuse(
                EntityKind.CONTENT_BLOCK, record.legacy_id, {"key": record.key}, record
            )
            if created:
                self.result.statistics.content_blocks += 1
                return

            changes = self._content_block_changes(block_id, record)
            if changes:
                if not self.dry_run:
                    self.target.update(EntityKind.CONTENT_BLOCK, block_id, changes)
                self.result.statistics.content_blocks_updated += 1
                logger.info(f"ContentBlock {record.key}: updated {', '.join(sorted(changes))}")

        self._process_rows(stage, "ContentBlock", rows, handle)
        logger.info(
            f"content_blocks: {self.result.statistics.content_blocks} created, "
            f"{self.result.statistics.content_blocks_updated} updated"
        )

    def _content_block_changes(self, block_id: str, record: ContentBlockRecord) -> Dict[str, Any]:
        """Fields of an existing block that the legacy row would change."""
        current = self.target.get(EntityKind.CONTENT_BLOCK, block_id)
        if current is None:
            return {}

        changes: Dict[str, Any] = {}
        if record.type is not None and record.type != current.get("type"):
            changes["type"] = record.type
        if record.hosting_id and record.hosting_id != current.get("hosting_id"):
            changes["hosting_id"] = record.hosting_id
        if changes:
            changes["updated_at"] = datetime.utcnow()
        return changes
