import asyncio
import sys
from pathlib import Path

# Setup path
project_root = Path(__file__).parent.parent
sys.path.append(str(project_root))

from docingest.db.db_manager import db_manager

async def cleanup():
    print("Dropping documents, tasks, sources, file_chunks, vectorizers...")
    await db_manager.drop_db()
    print("Tables dropped.")

    print("Re-initializing DB...")
    await db_manager.init_db()
    await db_manager.dispose()
    print("DB Reset Complete.")

if __name__ == "__main__":
    asyncio.run(cleanup())
