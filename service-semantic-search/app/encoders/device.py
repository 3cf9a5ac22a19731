"""Device selection for query encoding."""

import platform
from typing import Any, Dict

import structlog
import torch

logger = structlog.get_logger("search_service.device")


def detect_accelerators() -> Dict[str, Any]:
    """Report which accelerators torch can use on this host."""
    info = {
        "platform": platform.system(),
        "architecture": platform.machine(),
        "cuda_available": False,
        "mps_available": False,
        "recommended_device": "cpu",
    }

    try:
        if torch.cuda.is_available():
            info["cuda_available"] = True
            info["recommended_device"] = "cuda:0"
        elif hasattr(torch.backends, "mps") and torch.backends.mps.is_available():
            info["mps_available"] = True
            info["recommended_device"] = "mps"
    except Exception as e:
        logger.warning("Accelerator detection failed, falling back to CPU", error=str(e))
        info["recommended_device"] = "cpu"

    return info


def select_device(preference: str = "auto") -> torch.device:
    """Select the inference device.

    Parameters
    - preference: ``cpu`` forces CPU; ``gpu`` asks for CUDA or MPS and falls
      back to CPU with a warning; ``auto`` takes the recommended device
    """
    info = detect_accelerators()
    preference = (preference or "auto").lower()

    if preference == "cpu":
        device = "cpu"
    elif preference == "gpu":
        device = info["recommended_device"]
        if device == "cpu":
            logger.warning("GPU requested but not available, falling back to CPU")
    else:
        if preference != "auto":
            logger.warning("Unknown device preference, using auto", preference=preference)
        device = info["recommended_device"]

    logger.info(
        "Device selected",
        device=device,
        preference=preference,
        cuda_available=info["cuda_available"],
        mps_available=info["mps_available"],
    )
    return torch.device(device)
