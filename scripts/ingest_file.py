"""
Ingest local files through the file-sync flow and print the stored result.

Usage:
    python scripts/ingest_file.py path/to/file.pdf [--model gpt-4o-mini] [--loader]
"""
import argparse
import asyncio
import sys
from pathlib import Path

# Setup path so we can import docingest
project_root = Path(__file__).parent.parent
sys.path.append(str(project_root))

from docingest.db.db_manager import db_manager
from docingest.exceptions import IngestionException, StorageException
from docingest.ingestion.conversion import LoaderConversionEngine, PlainTextConversionEngine
from docingest.ingestion.orchestrator import IngestionOrchestrator
from docingest.logging_config import configure_from_settings, get_logger
from docingest.observability import configure_observability, set_trace_source
from docingest.schemas.requests import ConvertByFileRequest, UploadedFile

configure_from_settings(log_file="ingestion.log")
log = get_logger(__name__)


async def main(paths, model, use_loader):
    await db_manager.init_db()
    engine = LoaderConversionEngine() if use_loader else PlainTextConversionEngine()
    orchestrator = IngestionOrchestrator(conversion_engine=engine)
    set_trace_source("script")

    for path in paths:
        request = ConvertByFileRequest(
            files=[UploadedFile(filename=path.name, content=path.read_bytes())],
            model=model,
        )
        try:
            response = await orchestrator.convert_file(request)
        except (IngestionException, StorageException) as e:
            log.error("file_ingest_failed", file_name=path.name, error=str(e))
            continue

        result = await orchestrator.get_result(response.task_id)
        text = (result.result.content or {}).get("text", "")
        print(f"{path.name}: task={response.task_id} status={result.status.value} chars={len(text)}")

    await orchestrator.bootstrap.wait()
    await db_manager.dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Ingest files into the document store")
    parser.add_argument("files", nargs="+", type=Path)
    parser.add_argument("--model", default=None, help="Vectorizer model name")
    parser.add_argument("--loader", action="store_true", help="Convert with LangChain loaders instead of a raw read")
    args = parser.parse_args()

    configure_observability()
    asyncio.run(main(args.files, args.model, args.loader))
