from sqlalchemy.orm import Session

from streamfeed.core.config import settings
from streamfeed.core.database import SessionLocal
from streamfeed.core.logsetup import configure_logging
from streamfeed.models.tables import create_tables
from streamfeed.services.seed import SeedReconciler


def run():
    configure_logging(settings.LOG_LEVEL)
    create_tables()
    reconciler = SeedReconciler.from_settings(settings)
    db: Session = SessionLocal()
    try:
        report = reconciler.seed_content_if_needed(db, force=True)
    finally:
        db.close()
    if report is None:
        print("Seeding skipped, see the log for the database error")
        return
    print(f"Seeded from {report.path}: {report.inserted} new, {report.updated} updated, {report.total} total")


if __name__ == "__main__":
    run()
