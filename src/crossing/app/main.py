"""Main CLI application for the intersection agent."""

import logging
import time
from pathlib import Path
from typing import Optional

import click
import numpy as np

from crossing.config.defaults import (
    DEFAULT_LOG_LEVEL,
    DEFAULT_SEMAPHORE_TIMER,
    DEFAULT_TIMER_FOR_DECISION,
    MAX_REPORT_FILES,
    MAX_REPORT_FILE_SIZE_MB,
    get_default_config_path,
    get_default_report_path,
)
from crossing.config.schema import EpisodeConfig, EpisodeStats
from crossing.episode.controller import EpisodeController
from crossing.policy.heuristic import HeuristicPolicy
from crossing.policy.loader import (
    create_queue_policy,
    create_random_policy,
    get_device_recommendation,
    load_model,
    validate_model_compatibility,
)
from crossing.sim.traffic import QueueTrafficModel
from crossing.utils.logging import (
    EpisodeReporter,
    get_report_filename,
    rotate_reports,
    setup_logging,
    summarize_episodes,
)

logger = logging.getLogger(__name__)


def run_episode(controller: EpisodeController, traffic: QueueTrafficModel) -> None:
    """Drive one episode to its end on the reference traffic model."""
    controller.begin_episode()
    dt = controller.config.tick_seconds

    while controller.running:
        if controller.elapsed >= controller.config.max_episode_seconds:
            controller.truncate()
            break
        traffic.advance(dt)
        controller.tick(dt)


def _load_config(config: Optional[str]) -> EpisodeConfig:
    cfg_path = Path(config) if config else get_default_config_path()
    if not cfg_path.exists():
        logger.info(f"No episode config at {cfg_path}, using defaults")
        return EpisodeConfig()

    try:
        return EpisodeConfig.load(cfg_path)
    except Exception as e:
        click.echo(f"❌ Failed to load episode config: {e}")
        raise click.Abort() from e


@click.group()
@click.option('--log-level', default=DEFAULT_LOG_LEVEL, help='Logging level')
@click.option('--log-file', type=click.Path(), help='Log file path')
def cli(log_level: str, log_file: Optional[str]) -> None:
    """Crossing - RL traffic-intersection controller."""
    setup_logging(log_level, Path(log_file) if log_file else None)


@cli.command()
@click.option('--total-max-car-spawn', default=0, help='Vehicles per episode (0 = unlimited)')
@click.option('--semaphore-timer', default=DEFAULT_SEMAPHORE_TIMER, help='Wait timer limit (s)')
@click.option('--decision-interval', default=DEFAULT_TIMER_FOR_DECISION, help='Seconds between decision polls')
@click.option('--output', type=click.Path(), help='Episode config output file')
def config(
    total_max_car_spawn: int,
    semaphore_timer: float,
    decision_interval: float,
    output: Optional[str]
) -> None:
    """Write an episode configuration file."""
    try:
        episode_config = EpisodeConfig(
            total_max_car_spawn=total_max_car_spawn,
            semaphore_timer=semaphore_timer,
            timer_for_decision=decision_interval,
        )
    except Exception as e:
        click.echo(f"❌ Invalid episode config: {e}")
        raise click.Abort() from e

    cfg_path = Path(output) if output else get_default_config_path()
    episode_config.save(cfg_path)
    click.echo(f"✅ Episode config saved to {cfg_path}")


@cli.command()
@click.option('--episodes', default=10, help='Number of episodes to run')
@click.option('--config', 'config_path', type=click.Path(), help='Episode config file')
@click.option(
    '--policy',
    type=click.Choice(['random', 'queue', 'model']),
    default='queue',
    help='Policy answering decision requests'
)
@click.option('--model', type=click.Path(exists=True), help='Model file for --policy model')
@click.option('--device', type=click.Choice(['cpu', 'mps', 'cuda']), help='Inference device (default: best available)')
@click.option('--seed', type=int, help='Seed for traffic and random policy')
@click.option('--arrival-rate', default=0.3, help='Arrivals per second per approach')
@click.option('--vehicles-per-generator', type=int, help='Vehicles each generator spawns')
@click.option('--report', type=click.Path(), help='Report file path')
def run(
    episodes: int,
    config_path: Optional[str],
    policy: str,
    model: Optional[str],
    device: Optional[str],
    seed: Optional[int],
    arrival_rate: float,
    vehicles_per_generator: Optional[int],
    report: Optional[str]
) -> None:
    """Run episodes on the reference traffic model and report them."""
    episode_config = _load_config(config_path)

    if policy == 'model':
        if not model:
            click.echo("❌ --policy model requires --model")
            raise click.Abort()
        model_path = Path(model)
        try:
            policy_fn = load_model(model_path, device or get_device_recommendation())
        except Exception as e:
            click.echo(f"❌ Failed to load model: {e}")
            raise click.Abort() from e
        if model_path.suffix == ".zip" and not validate_model_compatibility(model_path):
            click.echo("❌ Model does not match the intersection observation/action spaces")
            raise click.Abort()
    elif policy == 'random':
        policy_fn = create_random_policy(seed)
    else:
        policy_fn = create_queue_policy()

    report_path = Path(report) if report else get_default_report_path() / get_report_filename()
    reporter = EpisodeReporter(report_path)

    traffic = QueueTrafficModel(
        arrival_rate=arrival_rate,
        vehicles_per_generator=vehicles_per_generator,
        seed=seed,
    )
    finished: list[EpisodeStats] = []
    controller = EpisodeController(
        config=episode_config,
        policy=policy_fn,
        reporter=reporter,
        vehicles=traffic,
        on_episode_end=finished.append,
        auto_restart=False,
    )
    traffic.bind(controller)

    click.echo(f"\n🚦 Running {episodes} episodes with '{policy}' policy")
    click.echo(f"📝 Reporting to: {report_path}")

    reporter.log_event("session_start", {
        "policy": policy,
        "model": model,
        "episodes": episodes,
        "seed": seed,
        "config": episode_config.dict(),
    })

    start = time.time()
    completed = 0
    try:
        for _ in range(episodes):
            run_episode(controller, traffic)
            stats = finished[-1]
            completed += 1
            click.echo(
                f"Episode {stats.episode_index}: {stats.end_reason} | "
                f"reward {stats.cumulative_reward:.3f} | "
                f"passed {stats.total_passed} | {stats.episode_length:.1f}s"
            )
    except KeyboardInterrupt:
        click.echo("\n⏹️  Stopped by user")
    except Exception as e:
        click.echo(f"❌ Episode run failed: {e}")
        raise click.Abort() from e
    finally:
        reporter.log_event("session_end", {
            "episodes": completed,
            "wall_seconds": time.time() - start,
        })
        rotate_reports(report_path.parent, MAX_REPORT_FILES, MAX_REPORT_FILE_SIZE_MB)

    summary = summarize_episodes(reporter.read_episodes())
    if summary:
        click.echo(
            f"\n📊 Mean reward {summary['mean_reward']:.3f} ± {summary['std_reward']:.3f}, "
            f"accident rate {summary['accident_rate']:.0%}"
        )


@cli.command()
@click.option('--config', 'config_path', type=click.Path(), help='Episode config file')
@click.option('--seed', type=int, help='Seed for traffic')
def manual(config_path: Optional[str], seed: Optional[int]) -> None:
    """Play one episode by hand: answer each decision with up/down/skip."""
    episode_config = _load_config(config_path)
    heuristic = HeuristicPolicy()

    def prompt_policy(obs: np.ndarray) -> Optional[int]:
        click.echo(
            f"North {'🟢' if obs[0] else '🔴'} queued {int(obs[1])} | "
            f"South {'🟢' if obs[3] else '🔴'} queued {int(obs[4])}"
        )
        key = click.prompt("Action", type=click.Choice(['up', 'down', 'skip']), default='skip')
        if key != 'skip':
            heuristic.press(key)
        return heuristic(obs)

    finished: list[EpisodeStats] = []
    traffic = QueueTrafficModel(seed=seed)
    controller = EpisodeController(
        config=episode_config,
        policy=prompt_policy,
        vehicles=traffic,
        on_episode_end=finished.append,
        auto_restart=False,
    )
    traffic.bind(controller)

    try:
        run_episode(controller, traffic)
    except (KeyboardInterrupt, click.Abort):
        click.echo("\n⏹️  Stopped by user")
        return
    except Exception as e:
        click.echo(f"❌ Episode failed: {e}")
        raise click.Abort() from e

    stats = finished[-1]
    click.echo(f"\n✅ Episode ended ({stats.end_reason}), reward {stats.cumulative_reward:.3f}")


@cli.command()
@click.argument('report_file', type=click.Path(exists=True))
def report(report_file: str) -> None:
    """Summarize a JSONL episode report."""
    reporter = EpisodeReporter(Path(report_file))
    try:
        episodes = reporter.read_episodes()
    except Exception as e:
        click.echo(f"❌ Failed to read report: {e}")
        raise click.Abort() from e

    summary = summarize_episodes(episodes)
    if not summary:
        click.echo("No episodes recorded")
        return

    click.echo(f"📊 {summary['episodes']} episodes")
    click.echo(f"   Mean reward:   {summary['mean_reward']:.3f} ± {summary['std_reward']:.3f}")
    click.echo(f"   Best reward:   {summary['best_reward']:.3f}")
    click.echo(f"   Mean length:   {summary['mean_length']:.1f}s")
    click.echo(f"   Accident rate: {summary['accident_rate']:.0%}")
    click.echo(f"   Mean passed:   {summary['mean_passed']:.1f}")

    stats = reporter.get_log_stats()
    click.echo(f"📝 Log entries: {stats['entries']}, Size: {stats.get('size_mb', 0):.1f}MB")


if __name__ == '__main__':
    cli()
