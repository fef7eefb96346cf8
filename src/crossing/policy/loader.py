"""Policy loading and inference for SB3 and PyTorch models."""

import logging
from pathlib import Path
from typing import Callable, Optional

import numpy as np

from crossing.config.defaults import (
    ACTION_SPACE_SIZE,
    DEFAULT_DETERMINISTIC,
    DEFAULT_DEVICE,
    OBSERVATION_SIZE,
)
from crossing.policy.action_space import sample_random_action

logger = logging.getLogger(__name__)

# A policy answers an observation with a discrete action, or None for no-op
PolicyFn = Callable[[np.ndarray], Optional[int]]


def _load_sb3(model_path: Path, device: str):
    """Load an SB3 model, trying DQN first and PPO second."""
    from stable_baselines3 import DQN, PPO

    try:
        model = DQN.load(model_path, device=device)
        logger.info("Successfully loaded as DQN model")
        return model, "DQN"
    except Exception as dqn_error:
        logger.debug(f"Failed to load as DQN: {dqn_error}")
        try:
            model = PPO.load(model_path, device=device)
            logger.info("Successfully loaded as PPO model")
            return model, "PPO"
        except Exception as ppo_error:
            logger.error(f"Failed to load as PPO: {ppo_error}")
            raise RuntimeError(
                f"Failed to load model as either DQN or PPO. "
                f"DQN error: {dqn_error}, PPO error: {ppo_error}"
            ) from ppo_error


def _torch_device(torch, requested: str):
    """Fall back to CPU when the requested accelerator is missing."""
    if requested == "mps" and torch.backends.mps.is_available():
        return torch.device("mps")
    if requested == "cuda" and torch.cuda.is_available():
        return torch.device("cuda")
    return torch.device("cpu")


def _load_torch(torch, model_path: Path, device: str):
    """Load a pickled network, or a checkpoint dict holding one under 'model'."""
    torch_device = _torch_device(torch, device)
    checkpoint = torch.load(model_path, map_location=torch_device, weights_only=False)

    if isinstance(checkpoint, dict):
        if 'model' not in checkpoint:
            raise RuntimeError(
                "Checkpoint has no 'model' entry; bare state dicts need the network class"
            )
        checkpoint = checkpoint['model']

    net = checkpoint.to(torch_device)
    net.eval()
    return net, torch_device


def load_model(model_path: Path, device: str = DEFAULT_DEVICE) -> PolicyFn:
    """Load trained model and return prediction function.

    Args:
        model_path: Path to model file (.zip for SB3, .pt/.pth for PyTorch)
        device: Device to run inference on ("cpu", "mps", "cuda")

    Returns:
        Function that takes an observation and returns an action value

    Raises:
        ImportError: If required dependencies are missing
        FileNotFoundError: If model file doesn't exist
        RuntimeError: If model loading fails
        ValueError: If the file extension is not supported
    """
    model_path = Path(model_path)
    if not model_path.exists():
        raise FileNotFoundError(f"Model file not found: {model_path}")

    if model_path.suffix == ".zip":
        try:
            logger.info(f"Loading SB3 model from {model_path}")
            model, model_type = _load_sb3(model_path, device)
        except ImportError as e:
            logger.error(f"SB3 not available: {e}")
            raise ImportError("stable-baselines3 is required for .zip model files") from e
        except RuntimeError:
            raise
        except Exception as e:
            logger.error(f"Failed to load SB3 model: {e}")
            raise RuntimeError(f"SB3 model loading failed: {e}") from e

        def predict_sb3(obs: np.ndarray) -> Optional[int]:
            """SB3 model prediction function (supports both DQN and PPO)."""
            try:
                action_value, _ = model.predict(obs.astype(np.float32), deterministic=DEFAULT_DETERMINISTIC)
                action_value = int(np.asarray(action_value).item())
                logger.debug(f"{model_type} predicted action {action_value}")
                return action_value
            except Exception as e:
                logger.error(f"SB3 {model_type} prediction failed: {e}")
                return None

        return predict_sb3

    elif model_path.suffix in [".pt", ".pth"]:
        try:
            import torch
        except ImportError as e:
            raise ImportError("torch is required for .pt/.pth model files") from e

        try:
            logger.info(f"Loading PyTorch model from {model_path}")
            net, torch_device = _load_torch(torch, model_path, device)
        except Exception as e:
            logger.error(f"Failed to load PyTorch model: {e}")
            raise RuntimeError(f"PyTorch model loading failed: {e}") from e

        def predict_torch(obs: np.ndarray) -> Optional[int]:
            """Argmax over the network's action logits."""
            try:
                batch = torch.as_tensor(obs, dtype=torch.float32, device=torch_device).unsqueeze(0)
                with torch.no_grad():
                    outputs = net(batch)
                logits = outputs[0] if isinstance(outputs, tuple) else outputs
                action_value = int(logits.argmax(dim=-1).item())
                logger.debug(f"PyTorch predicted action {action_value}")
                return action_value
            except Exception as e:
                logger.error(f"PyTorch prediction failed: {e}")
                return None

        return predict_torch

    else:
        raise ValueError(
            f"Unsupported model file extension: {model_path.suffix}. "
            f"Supported: .zip (SB3), .pt/.pth (PyTorch)"
        )


def create_random_policy(seed: Optional[int] = None) -> PolicyFn:
    """Create a random policy for testing.

    Args:
        seed: Seed for the policy's random generator

    Returns:
        Function that returns random actions
    """
    rng = np.random.default_rng(seed)

    def random_predict(obs: np.ndarray) -> int:
        """Random policy prediction."""
        return sample_random_action(rng)

    logger.info(f"Created random policy (seed={seed})")
    return random_predict


def create_queue_policy() -> PolicyFn:
    """Baseline that gives green to the approach with the longer queue.

    Ties keep the current lights.
    """
    def longest_queue(obs: np.ndarray) -> Optional[int]:
        north_queue, south_queue = float(obs[1]), float(obs[4])
        if north_queue > south_queue:
            return 0
        if south_queue > north_queue:
            return 1
        return None

    return longest_queue


def validate_model_compatibility(model_path: Path) -> bool:
    """Validate that an SB3 model matches the intersection spaces.

    Args:
        model_path: Path to a .zip model file

    Returns:
        True if model appears compatible
    """
    if model_path.suffix != ".zip":
        logger.error(f"Compatibility check only supports SB3 models, got {model_path.suffix}")
        return False

    try:
        model, _ = _load_sb3(model_path, "cpu")
    except Exception as e:
        logger.error(f"SB3 compatibility check failed: {e}")
        return False

    obs_shape = getattr(model.observation_space, 'shape', None)
    if obs_shape != (OBSERVATION_SIZE,):
        logger.warning(f"Model input shape {obs_shape} != expected {(OBSERVATION_SIZE,)}")
        return False

    action_size = getattr(model.action_space, 'n', None)
    if action_size != ACTION_SPACE_SIZE:
        logger.warning(f"Model action space {action_size} != expected {ACTION_SPACE_SIZE}")
        return False

    logger.info("SB3 model compatibility validated")
    return True


def get_recommended_dqn_hyperparameters(difficulty: str = "normal") -> dict:
    """Get recommended DQN hyperparameters for the intersection task.

    Args:
        difficulty: Difficulty level ("easy", "normal", "hard")

    Returns:
        Dictionary of recommended hyperparameters
    """
    base_params = {
        "learning_rate": 1e-3,
        "buffer_size": 50000,
        "learning_starts": 1000,
        "batch_size": 64,
        "gamma": 0.99,
        "target_update_interval": 500,
        "exploration_fraction": 0.2,
        "exploration_initial_eps": 1.0,
        "exploration_final_eps": 0.05,
    }

    if difficulty == "easy":
        base_params.update({
            "learning_rate": 2e-3,
            "exploration_final_eps": 0.1,
            "gamma": 0.95,
        })
    elif difficulty == "hard":
        base_params.update({
            "learning_rate": 5e-4,
            "buffer_size": 100000,
            "learning_starts": 5000,
            "exploration_final_eps": 0.02,
            "gamma": 0.995,
        })

    logger.info(f"Recommended DQN hyperparameters for {difficulty} difficulty:")
    for key, value in base_params.items():
        logger.info(f"  {key}: {value}")

    return base_params


def get_device_recommendation() -> str:
    """Best available inference device: mps, then cuda, then cpu."""
    try:
        import torch
    except ImportError:
        logger.info("PyTorch not available - defaulting to CPU")
        return "cpu"

    for candidate in ("mps", "cuda"):
        if _torch_device(torch, candidate).type == candidate:
            logger.info(f"Recommending {candidate} for inference")
            return candidate
    return "cpu"
