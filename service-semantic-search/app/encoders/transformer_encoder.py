"""Local transformer encoder.

Loads a BERT-style encoder from a directory holding three artifacts:

- ``model.safetensors``: weights
- ``tokenizer.json``: fast tokenizer definition
- ``config.json``: architecture config

The encoder exposes the two primitives the embedding generator needs:
``tokenize(text)`` and ``forward(input_ids, attention_mask)``. Weights are
loaded once, switched to eval mode, and only used under
``torch.inference_mode()`` so concurrent requests can share them.
"""

import time
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np
import structlog
import torch
from transformers import AutoModel, PreTrainedModel, PreTrainedTokenizerFast

from .device import select_device
from .errors import ModelArtifactMissingError, ModelLoadFailedError

logger = structlog.get_logger("search_service.encoder")

WEIGHTS_FILE = "model.safetensors"
TOKENIZER_FILE = "tokenizer.json"
CONFIG_FILE = "config.json"
REQUIRED_ARTIFACTS = (WEIGHTS_FILE, TOKENIZER_FILE, CONFIG_FILE)


def check_model_artifacts(model_dir: Union[str, Path]) -> Path:
    """Ensure every required artifact exists under ``model_dir``."""
    model_path = Path(model_dir)
    for artifact in REQUIRED_ARTIFACTS:
        artifact_path = model_path / artifact
        if not artifact_path.is_file():
            logger.error("Model artifact missing", path=str(artifact_path))
            raise ModelArtifactMissingError(
                f"{artifact} not found at {artifact_path}. Please download the model files."
            )
    return model_path


class TransformerEncoder:
    """Tokenizer plus transformer forward pass.

    Parameters
    - tokenizer: Fast tokenizer producing ``input_ids``/``attention_mask``
    - model: Encoder returning ``last_hidden_state``
    - device: Torch device the model lives on
    - max_length: Token budget; longer inputs are truncated
    - name: Identifier used in logs and metrics
    """

    def __init__(
        self,
        tokenizer: PreTrainedTokenizerFast,
        model: PreTrainedModel,
        device: torch.device,
        max_length: int = 512,
        name: str = "encoder",
    ):
        self.tokenizer = tokenizer
        self.model = model
        self.device = device
        self.max_length = max_length
        self.name = name

    @classmethod
    def from_directory(
        cls,
        model_dir: Union[str, Path],
        device_preference: str = "auto",
        max_length: int = 512,
    ) -> "TransformerEncoder":
        """Load the encoder from local artifacts.

        Raises
        - ``ModelArtifactMissingError`` if any artifact is absent
        - ``ModelLoadFailedError`` if loading fails
        """
        model_path = check_model_artifacts(model_dir)
        started = time.time()

        try:
            logger.info("Loading tokenizer", path=str(model_path / TOKENIZER_FILE))
            tokenizer = PreTrainedTokenizerFast(tokenizer_file=str(model_path / TOKENIZER_FILE))

            device = select_device(device_preference)

            logger.info("Loading model weights", path=str(model_path / WEIGHTS_FILE))
            model = AutoModel.from_pretrained(str(model_path), use_safetensors=True)
            model.to(device)
            model.eval()
        except Exception as e:
            logger.error("Failed to load encoder", model_dir=str(model_path), error=str(e))
            raise ModelLoadFailedError(f"Failed to load encoder from {model_path}: {e}") from e

        encoder = cls(tokenizer, model, device, max_length=max_length, name=model_path.name)
        logger.info(
            "Encoder loaded",
            model_name=encoder.name,
            device=str(device),
            hidden_size=encoder.dimension,
            duration_ms=(time.time() - started) * 1000,
        )
        return encoder

    @property
    def dimension(self) -> Optional[int]:
        """Hidden size of the encoder, when the config declares it."""
        return getattr(self.model.config, "hidden_size", None)

    def tokenize(self, text: str) -> Tuple[List[int], List[int]]:
        """Return ``(input_ids, attention_mask)`` with special tokens added."""
        encoding = self.tokenizer(
            text,
            add_special_tokens=True,
            truncation=True,
            max_length=self.max_length,
            return_attention_mask=True,
        )
        return list(encoding["input_ids"]), list(encoding["attention_mask"])

    def forward(self, input_ids: Sequence[int], attention_mask: Sequence[int]) -> np.ndarray:
        """Run the encoder and return per-token hidden states of shape (L, D)."""
        ids = torch.tensor([list(input_ids)], dtype=torch.long, device=self.device)
        mask = torch.tensor([list(attention_mask)], dtype=torch.long, device=self.device)

        with torch.inference_mode():
            output = self.model(input_ids=ids, attention_mask=mask)

        return output.last_hidden_state[0].to("cpu", dtype=torch.float32).numpy()
