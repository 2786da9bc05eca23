#!/usr/bin/env python3
"""
FarmPilot Agent - unattended farm patrol for one game session

Architecture:
- FarmClient talks to the local game bridge (login/heartbeat live there)
- FarmScheduler runs a check every few seconds and on landsChanged pushes
- Each check: snapshot -> classify -> weed/bug/water -> harvest ->
  unlock/upgrade -> remove/buy/plant/fertilize

Run with: python farm_agent.py --config ./config/settings.yaml
"""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from constants import (
    DEFAULT_CHECK_INTERVAL,
    EXPAND_DELAY,
    EVENT_RETRY_DELAY,
    EXPAND_RETRY_INTERVAL,
    MIN_CHECK_INTERVAL,
    NORMAL_FERTILIZER_ID,
    PLANT_DELAY,
    PUSH_DEBOUNCE,
    PUSH_SETTLE_DELAY,
    SEED_SHOP_ID,
    STARTUP_DELAY,
    STATS_INTERVAL,
)
from execution.cooldowns import RetryCooldowns
from execution.orchestrator import FarmOrchestrator
from execution.scheduler import FarmScheduler
from farm_client import FarmApiError, FarmClient, PushChannel
from planning.clock import ServerClock
from planning.models import LandStats
from planning.seed_selector import SeedSelector

logger = logging.getLogger(__name__)


# =============================================================================
# Configuration
# =============================================================================

@dataclass
class Config:
    """Configuration loaded from settings.yaml."""

    # Bridge
    bridge_url: str = "http://localhost:8790"
    bridge_timeout: float = 5.0

    # Farm
    check_interval: float = DEFAULT_CHECK_INTERVAL
    auto_expand_land: bool = False
    auto_upgrade_land: bool = False
    preferred_seed_id: int = 0
    force_lowest_level_crop: bool = False
    fertilizer_id: int = NORMAL_FERTILIZER_ID
    seed_shop_id: int = SEED_SHOP_ID

    # Timing
    startup_delay: float = STARTUP_DELAY
    push_debounce: float = PUSH_DEBOUNCE
    push_settle_delay: float = PUSH_SETTLE_DELAY
    stats_interval: float = STATS_INTERVAL
    plant_delay: float = PLANT_DELAY
    expand_delay: float = EXPAND_DELAY
    expand_retry_interval: float = EXPAND_RETRY_INTERVAL

    # Logging
    log_level: str = "INFO"
    log_file: Optional[Path] = None

    def __post_init__(self):
        self.check_interval = max(MIN_CHECK_INTERVAL, float(self.check_interval))

    @classmethod
    def from_yaml(cls, path: str = "./config/settings.yaml") -> "Config":
        """Load config from YAML file."""
        config = cls()

        try:
            with open(path, 'r') as f:
                data = yaml.safe_load(f) or {}

            # Bridge
            if 'bridge' in data:
                config.bridge_url = data['bridge'].get('url', config.bridge_url)
                config.bridge_timeout = data['bridge'].get('timeout', config.bridge_timeout)

            # Farm
            if 'farm' in data:
                farm = data['farm']
                config.check_interval = max(
                    MIN_CHECK_INTERVAL, float(farm.get('check_interval', config.check_interval))
                )
                config.auto_expand_land = farm.get('auto_expand_land', config.auto_expand_land)
                config.auto_upgrade_land = farm.get('auto_upgrade_land', config.auto_upgrade_land)
                config.preferred_seed_id = int(farm.get('preferred_seed_id') or 0)
                config.force_lowest_level_crop = farm.get('force_lowest_level_crop', config.force_lowest_level_crop)
                config.fertilizer_id = farm.get('fertilizer_id', config.fertilizer_id)
                config.seed_shop_id = farm.get('seed_shop_id', config.seed_shop_id)

            # Timing
            if 'timing' in data:
                timing = data['timing']
                config.startup_delay = timing.get('startup_delay', config.startup_delay)
                config.push_debounce = timing.get('push_debounce', config.push_debounce)
                config.push_settle_delay = timing.get('push_settle_delay', config.push_settle_delay)
                config.stats_interval = timing.get('stats_interval', config.stats_interval)
                config.plant_delay = timing.get('plant_delay', config.plant_delay)
                config.expand_delay = timing.get('expand_delay', config.expand_delay)
                config.expand_retry_interval = timing.get('expand_retry_interval', config.expand_retry_interval)

            # Logging
            if 'logging' in data:
                config.log_level = data['logging'].get('level', config.log_level)
                log_file = data['logging'].get('log_file')
                config.log_file = Path(log_file) if log_file else None

        except FileNotFoundError:
            logging.warning(f"Config file not found: {path}, using defaults")
        except Exception as e:
            logging.error(f"Error loading config: {e}, using defaults")
            return cls()

        return config


def setup_logging(config: Config) -> None:
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if config.log_file:
        config.log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(config.log_file))

    # Force reconfigure logging (libraries may have already configured it)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(message)s",
        handlers=handlers,
        force=True,
    )


# =============================================================================
# Engine
# =============================================================================

class FarmEngine:
    """One session's worth of farm automation: client, cooldowns and scheduler."""

    def __init__(self, config: Config, client: Optional[FarmClient] = None):
        self.config = config
        self.clock = ServerClock()
        self.client = client or FarmClient(
            config.bridge_url, timeout=config.bridge_timeout, on_server_time=self.clock.sync
        )
        if self.client.on_server_time is None:
            self.client.on_server_time = self.clock.sync
        self.client.on_operation_limits = self._on_operation_limits
        self.push_channel = PushChannel()
        self.cooldowns = RetryCooldowns(config.expand_retry_interval)
        self.operation_limits: List[Dict[str, Any]] = []
        self.event_retry_delay = EVENT_RETRY_DELAY
        self.running = False

        self.selector = SeedSelector(
            fetch_catalog=self.client.get_shop_info,
            recommend=self.client.recommend_seeds,
            shop_id=config.seed_shop_id,
            preferred_seed_id=config.preferred_seed_id,
            force_lowest_level=config.force_lowest_level_crop,
        )
        self.orchestrator = FarmOrchestrator(
            self.client,
            self.cooldowns,
            self.selector,
            auto_expand_land=config.auto_expand_land,
            auto_upgrade_land=config.auto_upgrade_land,
            fertilizer_id=config.fertilizer_id,
            plant_delay=config.plant_delay,
            expand_delay=config.expand_delay,
        )
        self.scheduler = FarmScheduler(
            self.client,
            self.clock,
            self.orchestrator,
            self.push_channel,
            check_interval=config.check_interval,
            startup_delay=config.startup_delay,
            push_debounce=config.push_debounce,
            push_settle_delay=config.push_settle_delay,
            stats_interval=config.stats_interval,
            on_first_cycle_complete=self._on_first_cycle,
        )

    def _on_operation_limits(self, limits: List[Dict[str, Any]]) -> None:
        self.operation_limits = limits
        logger.debug(f"Operation limits updated: {len(limits)} entries")

    def _on_first_cycle(self, stats: Optional[LandStats]) -> None:
        state = self.client.state
        if stats is None:
            logger.info(f"✅ Logged in as {state.name or state.gid} (lv{state.level}, {state.gold} gold)")
        else:
            logger.info(
                f"✅ Logged in as {state.name or state.gid} (lv{state.level}, {state.gold} gold) | "
                f"land {stats.summary()}"
            )

    async def _pump_events(self) -> None:
        """Forward bridge notifications into the push channel."""
        while self.running:
            try:
                events = await self.client.poll_events()
            except FarmApiError as e:
                logger.debug(f"Event poll failed: {e}")
                await asyncio.sleep(self.event_retry_delay)
                continue
            except Exception as e:
                logger.warning(f"Event poll error: {e}")
                await asyncio.sleep(self.event_retry_delay)
                continue
            for event in events:
                if not isinstance(event, dict):
                    continue
                self.push_channel.publish(event.get("topic", ""), event.get("land_ids") or [])

    async def run(self) -> None:
        """Main loop: log in state, expand once, then patrol until stopped."""
        self.running = True

        logger.info("=" * 60)
        logger.info("FarmPilot Agent Starting")
        logger.info(f"Bridge: {self.config.bridge_url}")
        logger.info(f"Interval: {self.config.check_interval}s")
        logger.info(f"Auto unlock: {'ON' if self.config.auto_expand_land else 'OFF'} | "
                    f"Auto upgrade: {'ON' if self.config.auto_upgrade_land else 'OFF'}")
        logger.info("=" * 60)

        pump: Optional[asyncio.Task] = None
        try:
            await self.client.refresh_session()
            await self.scheduler.expand_lands_now()
            self.scheduler.start()
            pump = asyncio.get_running_loop().create_task(self._pump_events())
            while self.running:
                await asyncio.sleep(0.5)
        finally:
            self.running = False
            self.scheduler.stop()
            if pump:
                pump.cancel()
            await self.scheduler.wait_closed()
            await self.client.aclose()

    def stop(self) -> None:
        """Stop the agent."""
        self.running = False


# =============================================================================
# CLI
# =============================================================================

def main():
    import argparse

    parser = argparse.ArgumentParser(description="FarmPilot Agent")
    parser.add_argument("--config", "-c", default="./config/settings.yaml",
                        help="Path to config file")
    parser.add_argument("--interval", type=float, default=None,
                        help="Seconds to wait after each farm check (min 1)")
    parser.add_argument("--plant", type=int, default=None,
                        help="Seed id to always plant (e.g. 20002)")
    parser.add_argument("--expand", action="store_true",
                        help="Automatically unlock land")
    parser.add_argument("--upgrade", action="store_true",
                        help="Automatically upgrade land")
    parser.add_argument("--log-level", default=None,
                        help="Override log level (DEBUG shows per-land phase traces)")
    args = parser.parse_args()

    config = Config.from_yaml(args.config)

    if args.interval is not None:
        config.check_interval = max(MIN_CHECK_INTERVAL, args.interval)
    if args.plant is not None:
        config.preferred_seed_id = args.plant
    if args.expand:
        config.auto_expand_land = True
    if args.upgrade:
        config.auto_upgrade_land = True
    if args.log_level:
        config.log_level = args.log_level

    setup_logging(config)
    engine = FarmEngine(config)

    print("\n" + "=" * 60)
    print("   🌱 FarmPilot - Farm Patrol Agent")
    print("=" * 60)
    print(f"   Bridge: {config.bridge_url}")
    print(f"   Interval: {config.check_interval}s")
    print(f"   Seed: {config.preferred_seed_id or 'auto'}")
    print("   Press Ctrl+C to stop")
    print("=" * 60 + "\n")

    try:
        asyncio.run(engine.run())
    except KeyboardInterrupt:
        logging.info("Stopped by user")


if __name__ == "__main__":
    main()
