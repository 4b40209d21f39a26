# bake_heightmaps.py

"""
================================================================================
OFFLINE HEIGHTMAP BAKER SCRIPT
================================================================================
This script is a command-line tool for pre-rendering a rectangle of terrain
chunks to a directory of grayscale heightmap PNGs ("baking"). Identical
chunks are written once: each image is named by the chunk's content hash and
manifest.json maps every chunk coordinate to its hash.

Usage:
    python bake_heightmaps.py --width 8 --height 8 --size 64 --seed 12345
    python bake_heightmaps.py --profiles path/to/terrain_types.yaml --output baked
================================================================================
"""
import os
import sys
import json
import logging
import argparse
import time
import multiprocessing
from tqdm import tqdm

from terrain_generator import TerrainEngine
from terrain_generator import config as DEFAULTS
from terrain_generator import heightmap_image
from terrain_generator.errors import TerrainError

# --- Global variables for worker processes ---
worker_engine = None
worker_chunk_dir = ""
worker_chunk_size = 0


def init_worker(profiles_path, seed, chunk_dir, chunk_size):
    """Initializes the global state for each worker process."""
    global worker_engine, worker_chunk_dir, worker_chunk_size

    worker_logger = logging.getLogger(f"Worker-{os.getpid()}")
    # Each chunk is visited once, so a small per-process cache is enough.
    worker_engine = TerrainEngine.from_config_file(
        profiles_path, config={'seed': seed, 'cache_capacity': 16}, logger=worker_logger
    )
    worker_chunk_dir = chunk_dir
    worker_chunk_size = chunk_size


def process_chunk(coords):
    """
    Generates and SAVES a single chunk heightmap. Returns only minimal metadata.
    """
    cx, cz = coords
    chunk = worker_engine.generate_chunk(cx, cz, worker_chunk_size)
    file_hash = chunk.content_hash
    file_path = os.path.join(worker_chunk_dir, f"{file_hash}.png")
    # Another worker may have written the same terrain already.
    if not os.path.exists(file_path):
        heightmap_image.save_heightmap_png(chunk, worker_chunk_dir, file_hash)
    return {'cx': cx, 'cz': cz, 'hash': file_hash, 'biome': chunk.biome.name}


# --- Main Baking Function ---
def bake_heightmaps(profiles_path: str | None, width: int, height: int, size: int,
                    seed: int, output_dir: str | None = None, workers: int | None = None) -> str | None:
    """
    Generates a width x height rectangle of chunks starting at (0, 0) and
    saves their heightmaps as PNG images plus a manifest.
    """
    logger = logging.getLogger("Baker")
    profiles_path = profiles_path or DEFAULTS.DEFAULT_PROFILE_PATH

    # Fail fast on a bad document before spawning workers.
    logger.info(f"Loading terrain profiles from: {profiles_path}")
    try:
        TerrainEngine.from_config_file(profiles_path, config={'seed': seed}, logger=logger)
    except TerrainError as e:
        logger.critical(f"Failed to load terrain profiles: {e}")
        return None

    base_output_dir = output_dir or f"baked_heightmaps/seed_{seed}"
    chunk_dir = os.path.join(base_output_dir, "chunks")
    os.makedirs(chunk_dir, exist_ok=True)

    total_chunks = width * height
    tasks = [(cx, cz) for cz in range(height) for cx in range(width)]
    num_workers = workers or max(1, multiprocessing.cpu_count() - 1)
    logger.info(f"Starting parallel bake of {width}x{height} chunks of size {size} "
                f"with {num_workers} worker processes...")

    manifest = {}
    saved_hashes = set()
    biome_counts = {}
    start_time = time.perf_counter()

    init_args = (profiles_path, seed, chunk_dir, size)
    with multiprocessing.Pool(processes=num_workers, initializer=init_worker, initargs=init_args) as pool:
        results_iterator = pool.imap_unordered(process_chunk, tasks)

        for result in tqdm(results_iterator, total=total_chunks, desc="Baking Chunks"):
            manifest[f"{result['cx']},{result['cz']}"] = result['hash']
            saved_hashes.add(result['hash'])
            biome_counts[result['biome']] = biome_counts.get(result['biome'], 0) + 1

    # --- Finalization ---
    manifest_path = os.path.join(base_output_dir, "manifest.json")
    with open(manifest_path, 'w') as f:
        json.dump({
            'seed': seed,
            'chunk_size': size,
            'width_chunks': width,
            'height_chunks': height,
            'chunks': dict(sorted(manifest.items())),
        }, f, indent=2)

    end_time = time.perf_counter()
    logger.info(f"Baking complete! Total time: {end_time - start_time:.2f} seconds.")
    logger.info(f"  - {total_chunks} total -> {len(saved_hashes)} unique heightmaps saved")
    for biome, count in sorted(biome_counts.items()):
        logger.info(f"  - {biome}: {count} chunks")
    logger.info(f"Baked heightmaps and manifest.json saved to: {base_output_dir}")
    return manifest_path


def main(argv=None):
    parser = argparse.ArgumentParser(description="Offline heightmap baker for the chunk terrain generator.")
    parser.add_argument("--profiles", type=str, default=None,
                        help="Path to a JSON or YAML terrain profile document. Defaults to the bundled profiles.")
    parser.add_argument("--width", type=int, default=8, help="Chunks along the x axis.")
    parser.add_argument("--height", type=int, default=8, help="Chunks along the z axis.")
    parser.add_argument("--size", type=int, default=DEFAULTS.DEFAULT_CHUNK_SIZE, help="Cells per chunk side.")
    parser.add_argument("--seed", type=int, default=DEFAULTS.DEFAULT_SEED, help="World seed.")
    parser.add_argument("--output", type=str, default=None, help="Output directory.")
    parser.add_argument("--workers", type=int, default=None, help="Worker processes.")
    args = parser.parse_args(argv)

    if args.width < 1 or args.height < 1 or not 0 < args.size <= DEFAULTS.MAX_CHUNK_SIZE:
        parser.error("width and height must be positive and size within (0, "
                     f"{DEFAULTS.MAX_CHUNK_SIZE}]")

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
        stream=sys.stdout
    )
    manifest_path = bake_heightmaps(args.profiles, args.width, args.height, args.size,
                                    args.seed, args.output, args.workers)
    return 0 if manifest_path else 1


# --- Command-Line Interface ---
if __name__ == "__main__":
    sys.exit(main())
