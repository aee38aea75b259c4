# Simulator orchestrator: transports -> command queue -> tick (decode + integrate) -> telemetry
# NOTE: all timing is taken here and passed down; the core never reads the clock

import argparse
import logging
import os
import time
from typing import Any, Dict, List, Optional

import yaml

from comm.serial_link import SerialLink
from environment import Environment, Obstacle
from kinematics import RobotParams
from simulator import Simulator
from udp_link import UdpLink

logger = logging.getLogger("sim")

DEFAULT_CONFIG = os.path.join(os.path.dirname(os.path.abspath(__file__)), "config.yaml")


def load_config(path: str = DEFAULT_CONFIG) -> Dict[str, Any]:
    with open(path) as f:
        return yaml.safe_load(f) or {}


def build_environment(cfg: Dict[str, Any]) -> Environment:
    ecfg = cfg.get("environment", {})
    env = Environment(width=ecfg.get("width", 5000.0), height=ecfg.get("height", 5000.0))
    for o in ecfg.get("obstacles", []) or []:
        env.add_obstacle(Obstacle(**o))
    return env


def build_simulator(cfg: Dict[str, Any], now: float = 0.0) -> Simulator:
    scfg = cfg.get("sim", {})
    return Simulator(
        params=RobotParams(**cfg.get("robot", {})),
        sim_speed=scfg.get("sim_speed", 1.0),
        timeout_enabled=scfg.get("timeout_enabled", True),
        start_time=now,
        environment=build_environment(cfg),
    )


def build_links(cfg: Dict[str, Any], sim: Simulator) -> List[Any]:
    links = []
    serial_cfg = dict(cfg.get("serial", {}))
    if serial_cfg.pop("enabled", False):
        links.append(SerialLink(sim, **serial_cfg))
    udp_cfg = dict(cfg.get("udp", {}))
    if udp_cfg.pop("enabled", True):
        links.append(UdpLink(sim, **udp_cfg))
    return links


def run(cfg: Dict[str, Any], duration: Optional[float] = None) -> Simulator:
    scfg = cfg.get("sim", {})
    tick_dt = 1.0 / scfg.get("update_hz", 60)
    status_dt = 1.0 / scfg.get("status_hz", 1)

    t0 = time.monotonic()
    sim = build_simulator(cfg, now=t0)
    links = build_links(cfg, sim)
    sim.start(t0)

    next_status = t0
    try:
        while sim.running:
            now = time.monotonic()
            if duration is not None and now - t0 >= duration:
                break

            for link in links:
                link.pump_ingress(now)

            sim.tick(now)

            for link in links:
                link.pump_egress()

            if now >= next_status:
                p, s = sim.pose, sim.state
                logger.info("pose x=%.1f y=%.1f a=%.1f | enc=%d/%d mode=%d speeds=%d/%d%s",
                            p.x, p.y, p.angle, s.encoder1, s.encoder2, s.mode, s.speed1, s.speed2,
                            " [timeout]" if s.timed_out else "")
                hits = sim.collisions()
                if hits:
                    logger.info("robot overlaps obstacle(s) %s", hits)
                next_status = now + status_dt

            # maintain update rate
            sleep_time = tick_dt - (time.monotonic() - now)
            if sleep_time > 0:
                time.sleep(sleep_time)
    except KeyboardInterrupt:
        logger.info("shutting down")
    finally:
        sim.stop()
        for link in links:
            link.close()
    return sim


def main():
    parser = argparse.ArgumentParser(description="Differential-drive motor driver simulator")
    parser.add_argument("-c", "--config", default=DEFAULT_CONFIG)
    parser.add_argument("--duration", type=float, default=None, help="stop after N seconds")
    args = parser.parse_args()

    cfg = load_config(args.config)
    logging.basicConfig(
        level=cfg.get("logging", {}).get("level", "INFO"),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    run(cfg, duration=args.duration)


if __name__ == "__main__":
    main()
