import asyncio
import sys
from pathlib import Path

# Add project root to python path to allow imports
project_root = Path(__file__).parent.parent
sys.path.append(str(project_root))

from docingest.db.db_manager import db_manager
from docingest.storage import VectorizerRegistry

async def main():
    print("Initializing Database...")
    try:
        await db_manager.ping()
        await db_manager.init_db()
        print("✅ Tables created successfully!")
        vectorizer = await VectorizerRegistry().ensure_default(db_manager)
        if vectorizer is not None:
            print(f"✅ Default vectorizer ready: {vectorizer.model_name} ({vectorizer.id})")
    except Exception as e:
        print(f"❌ Failed: {e}")
    finally:
        await db_manager.dispose()

if __name__ == "__main__":
    asyncio.run(main())
