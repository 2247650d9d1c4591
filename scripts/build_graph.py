"""CLI for building a note graph from a folder of markdown notes and saving its layout."""

import argparse
import sys
from pathlib import Path

from loguru import logger

from notegraph.config import settings
from notegraph.embedders.factory import create_embedder
from notegraph.engine import NoteGraphEngine
from notegraph.ingestion.folder_reader import FolderReader


def main(
    in_folder: str,
    graph_state_path: str,
    vector_store_path: str,
    ticks: int,
    cluster: bool,
) -> None:
    settings.graph_state_path = graph_state_path
    settings.vector_store_path = vector_store_path

    embedder = create_embedder(settings)
    engine = NoteGraphEngine.from_settings(embedder, settings)

    notes = FolderReader(Path(in_folder)).read_notes()
    engine.sync_notes(notes)
    for note in notes:
        engine.update_note(note, messy=True, now=note.modified)

    if cluster:
        result = engine.cluster(preview=False)
        if not result.ok:
            logger.warning(result.message)

    energies = engine.simulator.run(ticks)
    hubs = engine.communities()

    logger.info("Graph build complete:")
    logger.info(f"  - Notes: {len(engine.store)}")
    logger.info(f"  - Edges: {len(engine.store.edges())}")
    logger.info(f"  - Communities: {len(set(hubs.values()))}")
    if energies:
        logger.info(f"  - Kinetic energy after {ticks} ticks: {energies[-1]:.4f}")

    engine.save()


if __name__ == "__main__":
    logger.configure(handlers=[{"sink": sys.stderr, "level": settings.log_level}])

    parser = argparse.ArgumentParser()
    parser.add_argument(
        "--in-folder", type=str, required=True, help="Folder containing markdown files"
    )
    parser.add_argument(
        "--outfile-graph",
        type=str,
        required=False,
        help="Graph state file",
        default=settings.graph_state_path,
    )
    parser.add_argument(
        "--outfile-vector-store",
        type=str,
        required=False,
        help="Vector store file",
        default=settings.vector_store_path,
    )
    parser.add_argument(
        "--ticks", type=int, default=500, help="Layout ticks to run before saving"
    )
    parser.add_argument(
        "--cluster", action="store_true", help="Arrange notes in embedding clusters first"
    )

    args = parser.parse_args()

    main(
        in_folder=args.in_folder,
        graph_state_path=args.outfile_graph,
        vector_store_path=args.outfile_vector_store,
        ticks=args.ticks,
        cluster=args.cluster,
    )
