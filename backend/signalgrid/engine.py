"""
Traffic Engine

Wires the four components together and runs the telemetry pipeline:

    telemetry -> FlowAnalyzer -> CongestionForecaster -> IntersectionController

The EmergencyCoordinator preempts through the same controller, so the
controller stays the single point applying visible state changes.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

import numpy as np

from signalgrid.clock import Clock, now_ms
from signalgrid.config import ConfigManager, get_config
from signalgrid.control import DeferredAction, IntersectionController
from signalgrid.emergency import EmergencyCoordinator, RoutePlanner
from signalgrid.flow import FlowAnalyzer
from signalgrid.log import setup_logger
from signalgrid.models import CongestionLevel, max_level
from signalgrid.prediction import CongestionForecaster

logger = logging.getLogger(__name__)

SATURATION_COUNT = 50       # vehicles at which observed congestion reads 1.0


class TrafficEngine:
    """
    Traffic signal coordination engine

    Usage:
        engine = TrafficEngine.from_config()
        engine.controller.initialize("I-1")
        result = engine.ingest("I-1", 34, weather="rain")
        engine.tick()
    """

    def __init__(self,
                 config: Optional[ConfigManager] = None,
                 clock: Optional[Clock] = None,
                 rng: Optional[np.random.Generator] = None,
                 route_planner: Optional[RoutePlanner] = None):
        """
        Initialize engine

        Args:
            config: Configuration manager (default: global config)
            clock: Millisecond clock shared by every component
            rng: Random generator shared by simulated values
                (default: one per component, seeded from config)
            route_planner: Routing collaborator for emergencies
        """
        self.config = config or get_config()
        self.clock = clock or now_ms

        self.controller = IntersectionController(
            config=self.config.get_controller_config(),
            clock=self.clock,
            scheduler_config=self.config.get_scheduler_config()
        )
        self.flow = FlowAnalyzer(config=self.config.get_flow_config(), clock=self.clock)
        self.forecaster = CongestionForecaster(
            config=self.config.get_prediction_config(),
            rng=rng,
            clock=self.clock
        )
        self.emergency = EmergencyCoordinator(
            config=self.config.get_emergency_config(),
            controller=self.controller,
            route_planner=route_planner,
            rng=rng,
            clock=self.clock
        )

        self._task: Optional[asyncio.Task] = None

        logger.info("[ENGINE] Traffic engine ready")

    @classmethod
    def from_config(cls,
                    config_dir: Optional[str] = None,
                    log_level: int = logging.INFO,
                    **kwargs) -> "TrafficEngine":
        """Build an engine from a config directory, with package logging set up"""
        setup_logger(level=log_level)
        return cls(config=ConfigManager(config_dir), **kwargs)

    def ingest(self,
               intersection_id: str,
               vehicle_count: float,
               timestamp: Optional[int] = None,
               **extras) -> Dict[str, Any]:
        """
        Run one telemetry sample through the pipeline

        Args:
            intersection_id: Intersection (and forecast location) ID
            vehicle_count: Observed vehicle count
            timestamp: Observation time in ms (default: now)
            **extras: Optional weather, sensors and wait_time

        Returns:
            Flow insight, risk assessment and, for intersections known to
            the controller, the timing adaptation

        Raises:
            ValidationError: If the sample is malformed
        """
        insight = self.flow.record(intersection_id, vehicle_count, timestamp)
        at = insight['timestamp']

        self.forecaster.observe(intersection_id, min(1.0, vehicle_count / SATURATION_COUNT), at)

        conditions = {'trafficFlow': vehicle_count, 'time': at}
        if extras.get('weather') is not None:
            conditions['weather'] = extras['weather']
        risk = self.forecaster.assess_risk(intersection_id, conditions)

        adaptation = None
        if self.controller.has_intersection(intersection_id):
            level = max_level(CongestionLevel(insight['congestionLevel']), CongestionLevel(risk['riskLevel']))
            sample = {
                'vehicleCount': vehicle_count,
                'congestionLevel': level,
                'timestamp': at
            }
            if extras.get('sensors') is not None:
                sample['sensors'] = extras['sensors']
            if extras.get('wait_time') is not None:
                sample['waitTime'] = extras['wait_time']
            adaptation = self.controller.adapt_timing(intersection_id, sample)

        return {
            'insight': insight,
            'risk': risk,
            'adaptation': adaptation
        }

    def tick(self, now: Optional[int] = None) -> List[DeferredAction]:
        """Fire deferred actions that are due"""
        return self.controller.tick(now)

    async def run(self, interval: Optional[float] = None):
        """Drive deferred actions until stopped or cancelled"""
        await self.controller.scheduler.run_forever(interval)

    def start(self, interval: Optional[float] = None) -> asyncio.Task:
        """Start the deferred action loop on the running event loop"""
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run(interval))
        return self._task

    async def stop(self):
        """Stop the deferred action loop"""
        self.controller.scheduler.stop()
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("[ENGINE] Traffic engine stopped")

    def snapshot(self) -> Dict[str, Any]:
        """Process-lifetime state sizes and component statistics"""
        context = self.forecaster.context.counts()
        return {
            'timestamp': self.clock(),
            'intersections': self.controller.get_statistics()['intersections'],
            'activeEmergencies': self.emergency.get_statistics()['activeEmergencies'],
            'responseHistory': len(self.emergency.history),
            'flowSamples': self.flow.history.total_samples(),
            'weatherRecords': context['weather'],
            'eventRecords': context['events'],
            'controller': self.controller.get_statistics(),
            'emergency': self.emergency.get_statistics(),
            'flow': self.flow.get_statistics(),
            'forecaster': self.forecaster.get_statistics()
        }
