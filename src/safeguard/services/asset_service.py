"""
Asset lifecycle service.

Stateless gate between the HTTP layer and the record store: validates
payloads, derives certification dates and status, enforces the
organization/role/assignment rules and persists the result. Every operation
takes the resolved Caller explicitly.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum
from typing import Callable, Iterable, List, Optional, Sequence

from botocore.exceptions import BotoCoreError, ClientError
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..models.assets import Asset
from ..models.certification_documents import CertificationDocument
from ..schemas.asset import (
    AssetCreate,
    AssetRead,
    AssetStatus,
    AssetUpdate,
    BulkUploadItem,
    BulkUploadResponse,
    DashboardSummary,
    DocumentRead,
    ImportReport,
    ImportRowError,
    StatusCounts,
)
from ..schemas.auth import Caller
from ..utils.errors import (
    AuthorizationError,
    InvalidStateError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from .authorization import Action, AuthorizationPolicy, default_policy
from .bulk_transfer import describe_validation_error, export_assets_csv, parse_asset_csv
from .status_calculator import calculate_next_certification_date, compute_status, effective_status
from .storage.document_storage import DocumentStorage

logger = logging.getLogger(__name__)


@dataclass
class DocumentFile:
    """An uploaded certification file"""
    file_name: str
    content: bytes
    content_type: Optional[str] = None


def _plain(value):
    return value.value if isinstance(value, Enum) else value


def _is_duplicate_serial(error: IntegrityError) -> bool:
    # Postgres names the constraint, SQLite names the columns
    message = str(error.orig)
    return "uq_assets_org_serial" in message or "assets.org_id, assets.serial_number" in message


class AssetLifecycleService:
    """Tenant-scoped create/read/update/transition operations on assets"""

    def __init__(
        self,
        db: AsyncSession,
        storage: Optional[DocumentStorage] = None,
        policy: AuthorizationPolicy = default_policy,
        clock: Callable[[], date] = date.today,
    ):
        self.db = db
        self.storage = storage
        self.policy = policy
        self.clock = clock

    def today(self) -> date:
        return self.clock()

    # ------------------------------------------------------------------
    # Record store access
    # ------------------------------------------------------------------

    async def _load(self, asset_id: uuid.UUID, caller: Caller) -> Asset:
        """Fetch an asset inside the caller's organization, documents included"""
        result = await self.db.execute(
            select(Asset)
            .options(selectinload(Asset.certification_documents))
            .where(Asset.id == asset_id, Asset.org_id == caller.org_id)
            .execution_options(populate_existing=True)
        )
        asset = result.scalar_one_or_none()
        if asset is None:
            raise NotFoundError(f"Asset {asset_id} not found")
        return asset

    async def _get_authorized(self, asset_id: uuid.UUID, caller: Caller, action: Action) -> Asset:
        asset = await self._load(asset_id, caller)
        self.policy.authorize(caller, asset, action)
        return asset

    async def _commit(self, operation: str, stored_url: Optional[str] = None) -> None:
        """
        Commit the unit of work; nothing is persisted if it fails.

        stored_url names a document already written to storage for this unit
        of work. Storage has no transaction, so a failed commit leaves it
        unreferenced and it is logged for cleanup.
        """
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            self._log_orphan(operation, stored_url)
            logger.warning(f"{operation} rejected by store constraints: {e.orig}")
            if _is_duplicate_serial(e):
                raise ValidationError("Serial number already exists in this organization")
            raise ValidationError("Change conflicts with existing records")
        except SQLAlchemyError as e:
            await self.db.rollback()
            self._log_orphan(operation, stored_url)
            logger.error(f"{operation} failed: {e}")
            raise StoreError(str(e))

    @staticmethod
    def _log_orphan(operation: str, stored_url: Optional[str]) -> None:
        if stored_url:
            logger.error(f"{operation} rolled back; stored document {stored_url} is not referenced by any asset")

    async def _existing_serials(self, org_id: str, serials: Iterable[str]) -> set:
        serials = list(serials)
        if not serials:
            return set()
        try:
            result = await self.db.execute(
                select(Asset.serial_number).where(
                    Asset.org_id == org_id,
                    Asset.serial_number.in_(serials)
                )
            )
        except SQLAlchemyError as e:
            logger.error(f"Serial number lookup failed: {e}")
            raise StoreError(str(e))
        return set(result.scalars().all())

    async def _scoped_assets(self, caller: Caller, assigned_to: Optional[str] = None) -> List[Asset]:
        query = (
            select(Asset)
            .options(selectinload(Asset.certification_documents))
            .where(Asset.org_id == caller.org_id)
        )
        if assigned_to is not None:
            query = query.where(Asset.assigned_user_id == assigned_to)
        query = query.order_by(Asset.next_certification_date, Asset.serial_number)
        try:
            result = await self.db.execute(query)
        except SQLAlchemyError as e:
            logger.error(f"Asset listing failed for org {caller.org_id}: {e}")
            raise StoreError(str(e))
        return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Create / update / delete
    # ------------------------------------------------------------------

    def _check_certification_date(self, value: date) -> None:
        if value > self.today():
            raise ValidationError("last_certification_date cannot be in the future")

    def _build_asset(self, payload: AssetCreate, caller: Caller) -> Asset:
        today = self.today()
        self._check_certification_date(payload.last_certification_date)
        next_date = calculate_next_certification_date(payload.last_certification_date)
        asset = Asset(
            id=uuid.uuid4(),
            org_id=caller.org_id,
            serial_number=payload.serial_number,
            asset_class=_plain(payload.asset_class),
            glove_size=_plain(payload.glove_size),
            glove_color=_plain(payload.glove_color),
            assigned_user_id=payload.assigned_user_id,
            issue_date=payload.issue_date or today,
            last_certification_date=payload.last_certification_date,
            next_certification_date=next_date,
            status=compute_status(next_date, today).value,
            certification_documents=[],
        )
        self.policy.authorize(caller, asset, Action.CREATE)
        return asset

    async def create_asset(self, payload: AssetCreate, caller: Caller) -> Asset:
        """Register an asset in the caller's organization"""
        asset = self._build_asset(payload, caller)
        if await self._existing_serials(caller.org_id, [asset.serial_number]):
            raise ValidationError(f"Serial number {asset.serial_number} already exists in this organization")

        self.db.add(asset)
        await self._commit("create_asset")
        logger.info(
            f"Created asset {asset.id} ({asset.serial_number}) in org {caller.org_id}, "
            f"next certification {asset.next_certification_date}"
        )
        return await self._load(asset.id, caller)

    async def update_asset(self, asset_id: uuid.UUID, payload: AssetUpdate, caller: Caller) -> Asset:
        """
        Merge descriptive fields into an asset.

        A new last certification date restarts the clock unless the asset is
        failed or in testing, in which case the next date stays frozen.
        """
        asset = await self._get_authorized(asset_id, caller, Action.UPDATE)
        changes = payload.model_dump(exclude_unset=True)

        new_serial = changes.get("serial_number")
        if new_serial is not None and new_serial != asset.serial_number:
            if await self._existing_serials(caller.org_id, [new_serial]):
                raise ValidationError(f"Serial number {new_serial} already exists in this organization")
        if "last_certification_date" in changes:
            self._check_certification_date(changes["last_certification_date"])

        for field, value in changes.items():
            setattr(asset, field, _plain(value))

        if "last_certification_date" in changes and not asset.is_sticky:
            today = self.today()
            asset.next_certification_date = calculate_next_certification_date(asset.last_certification_date)
            asset.status = compute_status(asset.next_certification_date, today).value

        # The merged asset must still be one the caller may update
        try:
            self.policy.authorize(caller, asset, Action.UPDATE)
        except AuthorizationError:
            await self.db.rollback()
            raise

        await self._commit("update_asset")
        logger.info(f"Updated asset {asset_id} fields {sorted(changes)} by {caller.user_id}")
        return await self._load(asset_id, caller)

    async def delete_asset(self, asset_id: uuid.UUID, caller: Caller) -> None:
        """Delete an asset and its certification documents (admin only)"""
        asset = await self._get_authorized(asset_id, caller, Action.DELETE)
        await self.db.delete(asset)
        await self._commit("delete_asset")
        logger.info(f"Deleted asset {asset_id} from org {caller.org_id} by {caller.user_id}")

    # ------------------------------------------------------------------
    # Lifecycle transitions
    # ------------------------------------------------------------------

    async def mark_as_failed(self, asset_id: uuid.UUID, reason: str, caller: Caller) -> Asset:
        """
        Take an asset out of service.

        Raises InvalidStateError when the asset is already failed; repeating
        the call is never a silent no-op.
        """
        asset = await self._get_authorized(asset_id, caller, Action.TRANSITION)
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("A failure reason is required")
        if asset.status == AssetStatus.FAILED.value:
            raise InvalidStateError(f"Asset {asset.serial_number} is already marked as failed")

        asset.status = AssetStatus.FAILED.value
        asset.failure_date = self.today()
        asset.failure_reason = reason
        asset.testing_start_date = None

        await self._commit("mark_as_failed")
        logger.info(f"Asset {asset_id} marked as failed by {caller.user_id}: {reason}")
        return await self._load(asset_id, caller)

    async def mark_as_in_testing(self, asset_id: uuid.UUID, caller: Caller) -> Asset:
        """Send an asset for testing; failed assets must be recertified instead"""
        asset = await self._get_authorized(asset_id, caller, Action.TRANSITION)
        if asset.status == AssetStatus.FAILED.value:
            raise InvalidStateError(
                f"Asset {asset.serial_number} has failed; upload a new certification to return it to service"
            )
        if asset.status == AssetStatus.IN_TESTING.value:
            raise InvalidStateError(f"Asset {asset.serial_number} is already in testing")

        asset.status = AssetStatus.IN_TESTING.value
        asset.testing_start_date = self.today()

        await self._commit("mark_as_in_testing")
        logger.info(f"Asset {asset_id} sent for testing by {caller.user_id}")
        return await self._load(asset_id, caller)

    # ------------------------------------------------------------------
    # Certification documents
    # ------------------------------------------------------------------

    def _validate_file(self, file: DocumentFile) -> None:
        if not file.file_name or not file.file_name.strip():
            raise ValidationError("Filename is required")
        if not file.content:
            raise ValidationError("File cannot be empty")

    async def _store(self, file: DocumentFile, caller: Caller, asset_id: Optional[str]) -> str:
        if self.storage is None:
            logger.error("Document storage is not configured")
            raise StoreError("document storage not configured")
        try:
            return await asyncio.to_thread(
                self.storage.upload_certification,
                file.content,
                file.file_name,
                caller.org_id,
                caller.user_id,
                asset_id,
                file.content_type,
            )
        except (ClientError, BotoCoreError) as e:
            raise StoreError(str(e))

    def _recertify(
        self,
        asset: Asset,
        file: DocumentFile,
        file_url: str,
        caller: Caller,
        applied_to: Optional[List[str]] = None,
    ) -> CertificationDocument:
        """Attach a document and restart the certification cycle as of today"""
        today = self.today()
        asset.last_certification_date = today
        asset.next_certification_date = calculate_next_certification_date(today)
        asset.status = compute_status(asset.next_certification_date, today).value
        asset.failure_date = None
        asset.failure_reason = None
        asset.testing_start_date = None

        document = CertificationDocument(
            id=uuid.uuid4(),
            asset_id=asset.id,
            org_id=asset.org_id,
            file_name=file.file_name,
            file_url=file_url,
            upload_date=datetime.now(timezone.utc),
            uploaded_by=caller.user_id,
            applied_to_assets=applied_to,
        )
        asset.certification_documents.append(document)
        self.db.add(document)
        return document

    async def upload_document(self, asset_id: uuid.UUID, file: DocumentFile, caller: Caller) -> Asset:
        """Record a new certification for one asset"""
        self._validate_file(file)
        asset = await self._get_authorized(asset_id, caller, Action.UPLOAD)

        file_url = await self._store(file, caller, asset_id=str(asset.id))
        document = self._recertify(asset, file, file_url, caller)

        await self._commit("upload_document", stored_url=file_url)
        logger.info(f"Document {document.id} ({file.file_name}) recertified asset {asset_id}")
        return await self._load(asset_id, caller)

    async def bulk_upload_document(
        self,
        asset_ids: Sequence[uuid.UUID],
        file: DocumentFile,
        caller: Caller,
    ) -> BulkUploadResponse:
        """
        Apply one certification document to several assets.

        Each asset either gets its document, dates and status together or is
        left untouched and reported with the reason.
        """
        self._validate_file(file)
        unique_ids = list(dict.fromkeys(asset_ids))
        if not unique_ids:
            raise ValidationError("At least one asset id is required")

        results = {}
        accepted = []
        for asset_id in unique_ids:
            try:
                accepted.append(await self._get_authorized(asset_id, caller, Action.UPLOAD))
            except (NotFoundError, AuthorizationError) as e:
                results[asset_id] = BulkUploadItem(asset_id=asset_id, succeeded=False, error=e.message)

        if not accepted:
            logger.warning(f"Bulk upload by {caller.user_id} matched no writable assets")
            return BulkUploadResponse(
                file_url=None,
                applied_to_assets=unique_ids,
                results=[results[asset_id] for asset_id in unique_ids],
            )

        file_url = await self._store(file, caller, asset_id=None)
        applied_to = [str(asset_id) for asset_id in unique_ids]
        documents = [
            (asset.id, self._recertify(asset, file, file_url, caller, applied_to=applied_to))
            for asset in accepted
        ]

        await self._commit("bulk_upload_document", stored_url=file_url)
        for asset_id, document in documents:
            results[asset_id] = BulkUploadItem(
                asset_id=asset_id,
                succeeded=True,
                document=DocumentRead.model_validate(document),
            )
        logger.info(
            f"Bulk upload {file.file_name} applied to {len(documents)}/{len(unique_ids)} assets "
            f"in org {caller.org_id}"
        )
        return BulkUploadResponse(
            file_url=file_url,
            applied_to_assets=unique_ids,
            results=[results[asset_id] for asset_id in unique_ids],
        )

    async def list_documents(self, asset_id: uuid.UUID, caller: Caller) -> List[CertificationDocument]:
        asset = await self._get_authorized(asset_id, caller, Action.READ)
        return list(asset.certification_documents)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_asset_by_id(self, asset_id: uuid.UUID, caller: Caller) -> Asset:
        return await self._get_authorized(asset_id, caller, Action.READ)

    async def get_assets_by_user(self, user_id: str, caller: Caller) -> List[Asset]:
        """Assets assigned to ``user_id``; members may only ask about themselves"""
        if not caller.is_admin and user_id != caller.user_id:
            raise AuthorizationError(f"member {caller.user_id} asked for assets of {user_id}")
        return await self._scoped_assets(caller, assigned_to=user_id)

    async def list_assets(self, caller: Caller, status: Optional[AssetStatus] = None) -> List[Asset]:
        """Every asset the caller may read, optionally filtered by effective status"""
        assigned_to = None if caller.is_admin else caller.user_id
        assets = await self._scoped_assets(caller, assigned_to=assigned_to)
        if status is not None:
            today = self.today()
            assets = [
                asset for asset in assets
                if effective_status(asset.status, asset.next_certification_date, today) == status
            ]
        return assets

    async def get_dashboard_summary(self, caller: Caller) -> DashboardSummary:
        """Status counts and the assets that need attention first"""
        today = self.today()
        views = [AssetRead.from_asset(asset, today) for asset in await self.list_assets(caller)]

        counts = StatusCounts(total=len(views))
        field_for = {
            AssetStatus.ACTIVE: "active",
            AssetStatus.NEAR_DUE: "near_due",
            AssetStatus.EXPIRED: "expired",
            AssetStatus.IN_TESTING: "in_testing",
            AssetStatus.FAILED: "failed",
        }
        for view in views:
            name = field_for[view.status]
            setattr(counts, name, getattr(counts, name) + 1)

        needs_attention = sorted(
            (v for v in views if v.status in (AssetStatus.EXPIRED, AssetStatus.NEAR_DUE)),
            key=lambda v: (v.status != AssetStatus.EXPIRED, v.next_certification_date),
        )
        return DashboardSummary(
            counts=counts,
            needs_attention=needs_attention,
            in_testing=[v for v in views if v.status == AssetStatus.IN_TESTING],
            failed=[v for v in views if v.status == AssetStatus.FAILED],
        )

    # ------------------------------------------------------------------
    # Bulk transfer
    # ------------------------------------------------------------------

    async def import_assets(self, csv_text: str, caller: Caller) -> ImportReport:
        """
        Create assets from CSV rows.

        Missing required columns reject the whole file. Individual rows that
        fail validation are reported by row number and skipped; the rest are
        created in one transaction.
        """
        parsed = parse_asset_csv(csv_text)
        errors = list(parsed.errors)

        candidates = []
        for row in parsed.rows:
            try:
                payload = AssetCreate.model_validate(row.values)
                candidates.append((row.number, self._build_asset(payload, caller)))
            except PydanticValidationError as e:
                errors.append(ImportRowError(row=row.number, message=describe_validation_error(e)))
            except ValidationError as e:
                errors.append(ImportRowError(row=row.number, message=e.message))

        existing = await self._existing_serials(caller.org_id, {a.serial_number for _, a in candidates})
        seen = set()
        created = []
        for row_number, asset in candidates:
            if asset.serial_number in existing or asset.serial_number in seen:
                errors.append(ImportRowError(
                    row=row_number,
                    message=f"Serial number {asset.serial_number} already exists in this organization"
                ))
                continue
            seen.add(asset.serial_number)
            self.db.add(asset)
            created.append(asset)

        if created:
            await self._commit("import_assets")

        today = self.today()
        errors.sort(key=lambda err: err.row)
        logger.info(
            f"CSV import into org {caller.org_id}: {len(created)} created, {len(errors)} rejected rows"
        )
        return ImportReport(
            created=[AssetRead.from_asset(asset, today) for asset in created],
            errors=errors,
        )

    async def export_assets(self, caller: Caller) -> str:
        """CSV of every asset visible to the caller"""
        assets = await self.list_assets(caller)
        return export_assets_csv(assets, self.today())
