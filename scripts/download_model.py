#!/usr/bin/env python3
"""Download the query encoder artifacts.

Fetches ``model.safetensors``, ``tokenizer.json`` and ``config.json`` from the
Hugging Face Hub into ``MODEL_DIR`` so the search service can start offline.
"""

import argparse
from pathlib import Path

import structlog
from huggingface_hub import hf_hub_download

from libs.common.config import SearchConfig
from libs.common.logging import configure_logging

logger = structlog.get_logger("scripts.download_model")

DEFAULT_REPO_ID = "BAAI/bge-small-en-v1.5"
ARTIFACTS = ("model.safetensors", "tokenizer.json", "config.json")


def download_model(repo_id: str, target_dir: Path, revision: str = "main") -> None:
    """Download every artifact into ``target_dir``."""
    target_dir.mkdir(parents=True, exist_ok=True)
    for filename in ARTIFACTS:
        path = hf_hub_download(
            repo_id=repo_id,
            filename=filename,
            revision=revision,
            local_dir=str(target_dir),
        )
        logger.info("Downloaded model artifact", repo_id=repo_id, artifact=filename, path=path)


def main() -> None:
    config = SearchConfig()
    parser = argparse.ArgumentParser(description="Download the query encoder artifacts")
    parser.add_argument("--repo-id", default=DEFAULT_REPO_ID, help="Hugging Face model repository")
    parser.add_argument("--revision", default="main", help="Model revision")
    parser.add_argument("--target-dir", default=config.model_dir, help="Destination directory (default: MODEL_DIR)")
    args = parser.parse_args()

    configure_logging("download-model", config.log_level, "console")
    download_model(args.repo_id, Path(args.target_dir), args.revision)


if __name__ == "__main__":
    main()
