"""
Device Factory Management - Database Models
Version: 1.1.0

Changelog:
v1.1.0 (2026-03-04): device_association table for the ACTIVE-state guard and
                      device-id listings; vin_details cascades with its record
v1.0.0 (2026-02-27): Initial factory data, history and VIN schema
"""

from .device import (
    DeviceState, HistoryAction, DeviceFactoryRecord, DeviceHistoryEntry,
    DeviceCreateRequest, DeviceData, DeviceUpdateRequest, StateChange,
    DeviceFilter, DeviceAttributesUpdate, StateCount, DeviceInfoPage,
    DeviceStatePage, CreateResult,
)

import aiosqlite
import logging

logger = logging.getLogger(__name__)


async def init_db():
    """Initialize SQLite database with the factory data schema"""
    from database import get_db_path
    db_path = get_db_path()
    logger.info(f"Initializing database: {db_path}")

    async with aiosqlite.connect(db_path) as db:
        await db.execute("PRAGMA journal_mode=WAL")
        await db.execute("PRAGMA foreign_keys=ON")

        # ================================================================
        # FACTORY DATA
        # ================================================================
        await db.execute("""
            CREATE TABLE IF NOT EXISTS device_factory_data (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                manufacturing_date TEXT NOT NULL,
                model TEXT NOT NULL,
                imei TEXT,
                serial_number TEXT NOT NULL,
                platform_version TEXT,
                iccid TEXT,
                ssid TEXT,
                bssid TEXT,
                msisdn TEXT,
                imsi TEXT,
                record_date TEXT NOT NULL,
                factory_admin TEXT,
                created_date TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
                state TEXT NOT NULL DEFAULT 'PROVISIONED',
                is_stolen INTEGER NOT NULL DEFAULT 0,
                is_faulty INTEGER NOT NULL DEFAULT 0,
                package_serial_number TEXT,
                device_type TEXT
            )
        """)
        await db.execute(
            "CREATE INDEX IF NOT EXISTS idx_factory_imei ON device_factory_data(imei)")
        await db.execute(
            "CREATE INDEX IF NOT EXISTS idx_factory_serial ON device_factory_data(serial_number)")

        # ================================================================
        # FACTORY DATA HISTORY (append only)
        # ================================================================
        await db.execute("""
            CREATE TABLE IF NOT EXISTS device_factory_data_history (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                factory_id INTEGER NOT NULL,
                manufacturing_date TEXT,
                model TEXT,
                imei TEXT,
                serial_number TEXT,
                platform_version TEXT,
                iccid TEXT,
                ssid TEXT,
                bssid TEXT,
                msisdn TEXT,
                imsi TEXT,
                record_date TEXT,
                factory_admin TEXT,
                created_date TEXT,
                state TEXT,
                is_stolen INTEGER,
                is_faulty INTEGER,
                package_serial_number TEXT,
                device_type TEXT,
                action TEXT NOT NULL,
                created_timestamp TEXT NOT NULL
            )
        """)
        await db.execute(
            "CREATE INDEX IF NOT EXISTS idx_history_imei ON device_factory_data_history(imei)")

        # ================================================================
        # VIN ASSOCIATION
        # ================================================================
        await db.execute("""
            CREATE TABLE IF NOT EXISTS vin_details (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                vin TEXT NOT NULL,
                reference_id INTEGER NOT NULL UNIQUE
                    REFERENCES device_factory_data(id) ON DELETE CASCADE
            )
        """)

        # ================================================================
        # DEVICE ASSOCIATION (written by the activation side, read here)
        # ================================================================
        await db.execute("""
            CREATE TABLE IF NOT EXISTS device_association (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                factory_id INTEGER NOT NULL REFERENCES device_factory_data(id),
                harman_id TEXT,
                serial_number TEXT,
                user_id TEXT,
                association_status TEXT,
                created_at TEXT DEFAULT CURRENT_TIMESTAMP
            )
        """)

        await db.commit()

    logger.info("Database initialized")
