# scripts/setup/init_db.py
"""
Initialize database — creates the reconciliation_runs audit table (and the
station/point tables when pointing at an empty dev database).
Usage: python scripts/setup/init_db.py
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))

from connector_sync.database import create_tables, engine
from connector_sync.config import settings
from sqlalchemy import inspect, text


def main():
    print("🗄️  Connector Sync DB Initialization")
    print("=" * 40)
    print(f"📡 Database: {engine.url.render_as_string(hide_password=True)}")

    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        print("✅ Database connection OK")
    except Exception as e:
        print(f"❌ Cannot connect to database: {e}")
        print("\nCheck DATABASE_URL in .env")
        sys.exit(1)

    print("\n📋 Creating tables...")
    create_tables()
    print("✅ All tables created")

    tables = sorted(inspect(engine).get_table_names())
    print(f"\n📊 Tables in database ({len(tables)} total):")
    for t in tables:
        print(f"   ✓ {t}")

    print("\n🎉 Database ready! Run a reconciliation with:")
    print(f"   connector-sync --duration {settings.COLLECTOR_DURATION:g}")


if __name__ == "__main__":
    main()
