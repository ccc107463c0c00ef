"""Reset database to clean state."""
from zynkly.lib.db import drop_db, init_db

print("Resetting database...")

drop_db()
init_db()

print("Database reset complete!")
