"""
Service wiring: one KV backend, one guest layout, shared by every request
"""

import logging
from dataclasses import dataclass
from typing import Optional

from bigday.core.config import Settings
from bigday.core.db import Base, make_engine, make_session_factory
from bigday.services.backup_service import BackupService
from bigday.services.config_service import ConfigService
from bigday.services.firebase_client import create_firestore_client
from bigday.services.group_service import GroupAdminService
from bigday.services.guest_store import EntityIndexedStore, GuestRecordStore, build_guest_store
from bigday.services.kv_store import FirestoreKeyValueStore, KeyValueStore, SqlKeyValueStore
from bigday.services.migration_service import MigrationService
from bigday.services.photo_race_service import PhotoRaceService
from bigday.services.qr_service import QRService
from bigday.services.report_service import ReportService
from bigday.services.rsvp_service import RsvpService
from bigday.services.session_store import AdminSessionStore

logger = logging.getLogger(__name__)


@dataclass
class Services:
    kv: KeyValueStore
    backend: str
    guests: GuestRecordStore
    groups: GroupAdminService
    sessions: AdminSessionStore
    rsvp: RsvpService
    config: ConfigService
    races: PhotoRaceService
    backups: BackupService
    migration: MigrationService
    reports: ReportService
    qr: QRService


def build_kv_store(settings: Settings) -> KeyValueStore:
    if settings.USE_FIREBASE:
        logger.info("Using Firestore key-value backend")
        return FirestoreKeyValueStore(create_firestore_client(settings), settings.FIRESTORE_KV_COLLECTION)

    engine = make_engine(settings.DATABASE_URL)
    Base.metadata.create_all(bind=engine)
    logger.info("Using SQL key-value backend")
    return SqlKeyValueStore(make_session_factory(engine))


def build_services(settings: Settings, kv: Optional[KeyValueStore] = None) -> Services:
    kv = kv or build_kv_store(settings)
    guests = build_guest_store(kv, settings.STORAGE_MODE, settings.LEGACY_SHADOW_WRITES)
    config = ConfigService(kv)
    races = PhotoRaceService(kv, config)
    backups = BackupService(kv, guests, config, races)
    logger.info(f"Guest storage mode: {guests.mode}")

    return Services(
        kv=kv,
        backend="firestore" if isinstance(kv, FirestoreKeyValueStore) else "sql",
        guests=guests,
        groups=GroupAdminService(guests),
        sessions=AdminSessionStore(kv, settings.ADMIN_KEY, settings.SESSION_TTL_SECONDS),
        rsvp=RsvpService(guests),
        config=config,
        races=races,
        backups=backups,
        migration=MigrationService(EntityIndexedStore(kv), backups),
        reports=ReportService(guests, config),
        qr=QRService(settings.BASE_URL),
    )
