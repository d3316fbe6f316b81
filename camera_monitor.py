"""
Camera Monitoring Cycle
Probes every camera, classifies its status, records it and raises alerts
"""

import logging
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import replace
from datetime import datetime
from typing import Callable, List, Optional

from camera_models import (Camera, CycleSummary, DEGRADED_STATUSES, MonitoringResult,
                           STATUS_ERROR, StatusObservation)
from device_time import DeviceTimeExtractor
from notifier import format_camera_alert
from reachability import ping_camera
from smart_logging import StatusHistoryTracker, get_event_type
from status_classifier import classify, today_string

logger = logging.getLogger("camera_monitor")


class CameraMonitor:
    """Runs monitoring cycles over every camera in the store"""

    def __init__(self, store, notifier=None, history: Optional[StatusHistoryTracker] = None,
                 extractor: Optional[DeviceTimeExtractor] = None,
                 prober: Optional[Callable[[str], bool]] = None,
                 alert_destination: str = '', max_workers: Optional[int] = None,
                 clock: Callable[[], datetime] = datetime.now):
        """
        Initialize the camera monitor

        Args:
            store: CameraStore used to read cameras and persist results
            notifier: Notifier for degraded-status alerts (optional)
            history: Anti-flap tracker (a fresh one if None)
            extractor: Device time extractor (default settings if None)
            prober: Callable(address) -> bool reachability probe
            alert_destination: Chat/group id or address list alerts are sent to
            max_workers: Cameras checked concurrently (one worker per camera if None or 0)
            clock: Source of the current time
        """
        self.store = store
        self.notifier = notifier
        self.history = history or StatusHistoryTracker()
        self.extractor = extractor or DeviceTimeExtractor()
        self.prober = prober or ping_camera
        self.alert_destination = alert_destination
        self.max_workers = max_workers
        self.clock = clock

        if self.notifier and not self.alert_destination:
            logger.warning("Alert destination not configured - alerts will be skipped")

    def observe(self, camera: Camera, today: str) -> StatusObservation:
        """Probe the camera, read its date if reachable, and classify"""
        is_online = self.prober(camera.address)

        camera_date = None
        if is_online:
            camera_date = self.extractor.extract(camera.address, camera.username or None,
                                                 camera.password or None)

        if camera_date and camera_date != today:
            logger.info(f"[{camera.id}] Date error - expected {today}, camera reports {camera_date}")

        return StatusObservation(
            status=classify(is_online, camera_date, today),
            reachable=is_online,
            camera_date=camera_date
        )

    def monitor_camera(self, camera: Camera, reference_date: Optional[str] = None) -> MonitoringResult:
        """
        Check one camera end to end

        Any failure is contained here: the camera is recorded as 'error' and
        the result is flagged, other cameras are unaffected.

        Args:
            camera: Camera snapshot from the store
            reference_date: Expected device date (today if None)

        Returns:
            MonitoringResult for the camera
        """
        today = reference_date or today_string(self.clock())
        logger.debug(f"[{camera.id}] Monitoring {camera.display_name} ({camera.address}), "
                     f"current status: {camera.status}")

        try:
            observation = self.observe(camera, today)
            new_status = observation.status
            camera_date = observation.camera_date
            previous_status = camera.status
            status_changed = previous_status != new_status

            now = self.clock()
            self.store.update_camera_status(
                camera.id,
                new_status,
                camera_date,
                now,
                now if observation.reachable else camera.last_online
            )

            decision = self.history.decide(camera.id, new_status, now)
            alert_sent = False

            if decision.should_log:
                details = (f"Camera date: {camera_date}, Expected: {today}" if camera_date
                           else f"Status: {new_status}")
                self.store.create_log(camera.id, decision.event_type, details, now)
                logger.info(f"[{camera.id}] Logged {decision.event_type}")

                if status_changed and new_status in DEGRADED_STATUSES:
                    updated = replace(camera, last_online=now) if observation.reachable else camera
                    alert_sent = self._send_alert(updated, new_status, camera_date, today)

            logger.info(f"[{camera.id}] {previous_status} -> {new_status} "
                        f"(changed: {status_changed}, logged: {decision.should_log})")

            return MonitoringResult(
                camera_id=camera.id,
                status=new_status,
                should_log=decision.should_log,
                event_type=decision.event_type,
                camera_date=camera_date,
                status_changed=status_changed,
                alert_sent=alert_sent
            )

        except Exception as e:
            logger.error(f"[{camera.id}] Monitoring error: {e}", exc_info=True)
            return self._record_error(camera, str(e) or type(e).__name__)

    def _record_error(self, camera: Camera, message: str) -> MonitoringResult:
        event_type = get_event_type(STATUS_ERROR)
        now = self.clock()

        try:
            self.store.create_log(camera.id, event_type, f"Monitoring error: {message}", now)
        except Exception as e:
            logger.error(f"[{camera.id}] Failed to log monitoring error: {e}")

        try:
            self.store.set_camera_error(camera.id, now)
        except Exception as e:
            logger.error(f"[{camera.id}] Failed to store error status: {e}")

        return MonitoringResult(
            camera_id=camera.id,
            status=STATUS_ERROR,
            should_log=True,
            event_type=event_type,
            error=True,
            status_changed=camera.status != STATUS_ERROR,
            error_message=message
        )

    def _send_alert(self, camera: Camera, status: str, camera_date: Optional[str], today: str) -> bool:
        if not self.notifier or not self.alert_destination:
            return False

        message = format_camera_alert(camera, status, camera_date, today)
        if not message:
            return False

        try:
            sent = self.notifier.send(self.alert_destination, message)
        except Exception as e:
            logger.error(f"[{camera.id}] Alert failed: {e}")
            return False

        if sent:
            logger.info(f"[{camera.id}] Alert sent for {status}")
        else:
            logger.warning(f"[{camera.id}] Alert for {status} not delivered by notifier")
        return bool(sent)

    def run_cycle(self) -> CycleSummary:
        """
        Monitor all cameras concurrently and wait for every one to finish

        Returns:
            CycleSummary with per-camera results and the success/failure tally
        """
        summary = CycleSummary(started_at=self.clock())

        try:
            cameras = self.store.list_cameras()
        except Exception as e:
            logger.error(f"Failed to load cameras: {e}")
            summary.finished_at = self.clock()
            return summary

        if not cameras:
            logger.info("No cameras found")
            summary.finished_at = self.clock()
            return summary

        today = today_string(summary.started_at)
        logger.info(f"Checking {len(cameras)} cameras (reference date {today})")

        summary.results = self._run_concurrently(cameras, today)
        summary.finished_at = self.clock()

        duration = (summary.finished_at - summary.started_at).total_seconds()
        logger.info(f"Cycle completed: {summary.succeeded} success, {summary.failed} errors "
                    f"in {duration:.1f}s")
        if summary.failed:
            logger.warning(f"{summary.failed} cameras had errors")

        return summary

    def _run_concurrently(self, cameras: List[Camera], today: str) -> List[MonitoringResult]:
        workers = len(cameras)
        if self.max_workers:
            workers = max(1, min(self.max_workers, workers))

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="camera-monitor") as executor:
            futures = [executor.submit(self.monitor_camera, camera, today) for camera in cameras]
            wait(futures)

        results = []
        for camera, future in zip(cameras, futures):
            try:
                results.append(future.result())
            except Exception as e:
                logger.error(f"[{camera.id}] Pipeline failed: {e}")
                results.append(MonitoringResult(
                    camera_id=camera.id,
                    status=STATUS_ERROR,
                    should_log=True,
                    event_type=get_event_type(STATUS_ERROR),
                    error=True,
                    error_message=str(e)
                ))
        return results
