#!/usr/bin/env python3
"""Example script for training a DQN model on the intersection environment.

This script demonstrates how to:
1. Create the Gymnasium environment around the episode controller
2. Train a Stable-Baselines3 DQN agent with recommended hyperparameters
3. Evaluate the trained agent against the longest-queue baseline
4. Save the trained model for `crossing run --policy model`

Usage:
    python examples/train_dqn.py --steps 50000 --save-path models/dqn_crossing.zip
"""

import argparse
import logging
from pathlib import Path

import numpy as np

from crossing.config.defaults import get_default_models_path
from crossing.config.schema import EpisodeConfig
from crossing.environment import CrossingEnv
from crossing.policy.loader import create_queue_policy, get_recommended_dqn_hyperparameters
from crossing.sim.traffic import QueueTrafficModel
from crossing.utils.logging import setup_logging

logger = logging.getLogger(__name__)


def make_env(seed: int, total_max_car_spawn: int) -> CrossingEnv:
    config = EpisodeConfig(total_max_car_spawn=total_max_car_spawn, timer_for_decision=1.0)
    return CrossingEnv(config=config, traffic=QueueTrafficModel(seed=seed))


def evaluate(env: CrossingEnv, predict, episodes: int = 5) -> float:
    """Mean episode return of a policy function."""
    returns = []
    for episode in range(episodes):
        obs, _ = env.reset(seed=1000 + episode)
        done = False
        total = 0.0
        while not done:
            action = predict(obs)
            obs, reward, terminated, truncated, _ = env.step(-1 if action is None else action)
            total += reward
            done = terminated or truncated
        returns.append(total)
    return float(np.mean(returns))


def main():
    parser = argparse.ArgumentParser(description="Train DQN on the intersection environment")
    parser.add_argument("--steps", type=int, default=50000, help="Training timesteps")
    parser.add_argument("--save-path", type=Path, help="Model output (default: ~/.crossing/models/dqn_crossing.zip)")
    parser.add_argument("--difficulty", choices=["easy", "normal", "hard"], default="normal")
    parser.add_argument("--cars", type=int, default=60, help="Vehicles per episode")
    parser.add_argument("--seed", type=int, default=0)
    args = parser.parse_args()

    setup_logging("INFO")

    try:
        from stable_baselines3 import DQN
    except ImportError:
        logger.error("stable-baselines3 is required: pip install -e '.[rl]'")
        raise SystemExit(1)

    env = make_env(args.seed, args.cars)
    params = get_recommended_dqn_hyperparameters(args.difficulty)

    model = DQN("MlpPolicy", env, verbose=1, seed=args.seed, **params)
    model.learn(total_timesteps=args.steps)

    save_path = args.save_path or get_default_models_path() / "dqn_crossing.zip"
    save_path.parent.mkdir(parents=True, exist_ok=True)
    model.save(save_path)
    logger.info(f"Saved model to {save_path}")

    eval_env = make_env(args.seed + 1, args.cars)
    dqn_return = evaluate(
        eval_env, lambda obs: int(model.predict(obs, deterministic=True)[0])
    )
    baseline_return = evaluate(eval_env, create_queue_policy())
    logger.info(f"DQN mean return: {dqn_return:.3f} | longest-queue baseline: {baseline_return:.3f}")


if __name__ == "__main__":
    main()
