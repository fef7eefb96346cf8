"""Tests for action decoding and policy loading."""

import sys
from pathlib import Path
from unittest.mock import patch

import numpy as np
import pytest

from crossing.config.schema import Approach
from crossing.policy.action_space import (
    decode_action,
    encode_action,
    get_action_meanings,
    get_action_space_size,
    sample_random_action,
)
from crossing.policy.heuristic import HeuristicPolicy
from crossing.policy.loader import (
    create_queue_policy,
    create_random_policy,
    get_device_recommendation,
    get_recommended_dqn_hyperparameters,
    load_model,
    validate_model_compatibility,
)


def make_obs(north_queue, south_queue):
    return np.array([0, north_queue, north_queue, 0, south_queue, south_queue], dtype=np.float32)


class TestActionSpace:
    """Test action space encoding/decoding."""

    def test_decode_action(self):
        """Test decoding the two light actions."""
        assert decode_action(0) is Approach.NORTH
        assert decode_action(1) is Approach.SOUTH

    def test_decode_numpy_values(self):
        """Test decoding numpy scalars and single-element arrays."""
        assert decode_action(np.int64(1)) is Approach.SOUTH
        assert decode_action(np.array([0])) is Approach.NORTH
        assert decode_action(np.array([0, 1])) is None

    def test_decode_action_invalid(self):
        """Test invalid action values decode to a no-op."""
        assert decode_action(2) is None
        assert decode_action(-1) is None
        assert decode_action(None) is None
        assert decode_action(0.5) is None
        assert decode_action(True) is None

    def test_encode_action(self):
        """Test encoding approaches to action values."""
        assert encode_action(Approach.NORTH) == 0
        assert encode_action("south") == 1

        with pytest.raises(ValueError):
            encode_action("east")

    def test_get_action_space_size(self):
        """Test action space size."""
        assert get_action_space_size() == 2

    def test_get_action_meanings(self):
        """Test human-readable action names."""
        assert get_action_meanings() == ["North green", "South green"]

    def test_sample_random_action(self):
        """Test random samples cover both actions."""
        rng = np.random.default_rng(0)
        samples = {sample_random_action(rng) for _ in range(50)}

        assert samples == {0, 1}


class TestBuiltinPolicies:
    """Test policies that need no trained model."""

    def test_create_random_policy(self):
        """Test the random policy is seeded and valid."""
        first = create_random_policy(3)
        second = create_random_policy(3)
        obs = make_obs(1, 1)

        actions = [first(obs) for _ in range(20)]

        assert actions == [second(obs) for _ in range(20)]
        assert set(actions) <= {0, 1}

    def test_queue_policy(self):
        """Test the longest queue gets the green light."""
        policy = create_queue_policy()

        assert policy(make_obs(3, 1)) == 0
        assert policy(make_obs(0, 2)) == 1

    def test_queue_policy_tie(self):
        """Test equal queues keep the current lights."""
        policy = create_queue_policy()

        assert policy(make_obs(2, 2)) is None

    def test_heuristic_policy(self):
        """Test key presses map to actions and are consumed once."""
        policy = HeuristicPolicy()
        obs = make_obs(1, 1)

        assert policy(obs) is None

        assert policy.press("up") == 0
        assert policy(obs) == 0
        assert policy(obs) is None

        policy.press("DOWN")
        assert policy(obs) == 1

    def test_heuristic_unbound_key(self):
        """Test unknown keys raise."""
        with pytest.raises(ValueError):
            HeuristicPolicy().press("left")


class TestPolicyLoader:
    """Test policy loading functionality."""

    def test_load_missing_model(self, tmp_path):
        """Test loading a model that does not exist."""
        with pytest.raises(FileNotFoundError):
            load_model(tmp_path / "missing.zip")

    def test_load_unsupported_extension(self, tmp_path):
        """Test unsupported model files are rejected."""
        model_path = tmp_path / "model.onnx"
        model_path.write_bytes(b"not a model")

        with pytest.raises(ValueError):
            load_model(model_path)

    def test_compatibility_requires_zip(self):
        """Test compatibility check only accepts SB3 archives."""
        assert validate_model_compatibility(Path("model.pt")) is False

    def test_dqn_hyperparameters(self):
        """Test difficulty presets adjust the base parameters."""
        normal = get_recommended_dqn_hyperparameters()
        hard = get_recommended_dqn_hyperparameters("hard")

        assert normal["gamma"] == 0.99
        assert hard["buffer_size"] > normal["buffer_size"]
        assert get_recommended_dqn_hyperparameters("easy")["exploration_final_eps"] == 0.1

    def test_get_device_recommendation_no_torch(self):
        """Test device recommendation when torch is not available."""
        with patch.dict(sys.modules, {'torch': None}):
            assert get_device_recommendation() == "cpu"

    def test_get_device_recommendation_cuda(self):
        """Test device recommendation when CUDA is available."""
        torch = pytest.importorskip("torch")

        with patch.object(torch.backends.mps, 'is_available', return_value=False), \
                patch.object(torch.cuda, 'is_available', return_value=True):
            assert get_device_recommendation() == "cuda"

    def test_get_device_recommendation_cpu(self):
        """Test device recommendation when only CPU is available."""
        torch = pytest.importorskip("torch")

        with patch.object(torch.backends.mps, 'is_available', return_value=False), \
                patch.object(torch.cuda, 'is_available', return_value=False):
            assert get_device_recommendation() == "cpu"
