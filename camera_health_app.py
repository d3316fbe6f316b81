#!/usr/bin/env python3
"""
Camera Health Monitor - API Server
==================================
Periodic camera reachability and clock-drift monitoring with:
- Ping probe and device date extraction per camera
- Anti-flap event logging
- Chat relay / email alerts for offline and wrong-date cameras
- Daily status report
- REST controls for the monitoring loop
"""

import logging
import uuid
from datetime import datetime, timedelta
from functools import partial, wraps
from typing import Callable, Optional

from flask import Flask, jsonify, request
from flask_cors import CORS

from camera_models import Camera
from camera_monitor import CameraMonitor
from camera_store import SqlCameraStore
from continuous_monitor import ContinuousMonitor
from daily_report import DailyReport
from db_manager import DatabaseManager
from device_time import DeviceTimeExtractor
from monitor_config import (DB_CONFIG, EMAIL_CONFIG, FLASK_CONFIG, MONITOR_CONFIG,
                            NOTIFY_CONFIG, REPORT_CONFIG, setup_logging)
from notifier import create_notifier
from reachability import ping_camera
from report_scheduler import ReportScheduler
from smart_logging import StatusHistoryTracker

logger = logging.getLogger("camera_health")

VERSION = "1.0"


def _serialize_state(state: dict) -> dict:
    return {
        'is_running': state['is_running'],
        'last_run': state['last_run'].isoformat() if state['last_run'] else None,
    }


def create_app(monitor: ContinuousMonitor, store, daily_report: Optional[DailyReport] = None,
               prober: Callable[[str], bool] = ping_camera, cron_secret: str = '',
               notifier=None) -> Flask:
    """
    Build the Flask application

    Args:
        monitor: ContinuousMonitor controlling the monitoring loop
        store: Camera store (SqlCameraStore)
        daily_report: DailyReport used by /api/daily-report (optional)
        prober: Reachability probe used by /api/test-ping
        cron_secret: Bearer token required on control endpoints (disabled if empty)
        notifier: Alert transport, reported by /api/notifier/status (optional)
    """
    app = Flask(__name__)
    CORS(app)

    history = monitor.camera_monitor.history

    def require_secret(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            if cron_secret and request.headers.get('Authorization') != f"Bearer {cron_secret}":
                return jsonify({'error': 'Unauthorized'}), 401
            return view(*args, **kwargs)
        return wrapper

    @app.route('/api/health', methods=['GET'])
    def health_check():
        """Service health and monitoring state"""
        return jsonify({
            'status': 'healthy',
            'timestamp': datetime.now().isoformat(),
            'version': VERSION,
            'monitoring': _serialize_state(monitor.get_state()),
            'tracked_cameras': len(history),
        })

    @app.route('/api/cameras', methods=['GET'])
    def list_cameras():
        try:
            cameras = store.list_cameras()
            return jsonify({
                'cameras': [c.to_dict() for c in cameras],
                'total': len(cameras)
            })
        except Exception as e:
            logger.error(f"Error listing cameras: {e}")
            return jsonify({'error': str(e)}), 500

    @app.route('/api/cameras', methods=['POST'])
    @require_secret
    def add_camera():
        """Register a camera"""
        data = request.get_json(silent=True) or {}
        ip = (data.get('ip') or '').strip()
        if not ip:
            return jsonify({'error': 'ip required'}), 400

        try:
            latitude = float(data['latitude']) if data.get('latitude') is not None else None
            longitude = float(data['longitude']) if data.get('longitude') is not None else None
        except (TypeError, ValueError):
            return jsonify({'error': 'latitude/longitude must be numbers'}), 400

        camera = Camera(
            id=uuid.uuid4().hex,
            address=ip,
            name=data.get('name'),
            username=data.get('username'),
            password=data.get('password'),
            latitude=latitude,
            longitude=longitude
        )
        try:
            store.add_camera(camera)
        except Exception as e:
            logger.error(f"Error adding camera {ip}: {e}")
            return jsonify({'error': str(e)}), 500

        return jsonify(camera.to_dict()), 201

    @app.route('/api/monitoring/start', methods=['POST'])
    @require_secret
    def start_monitoring():
        data = request.get_json(silent=True) or {}
        try:
            interval = float(data.get('interval_seconds', MONITOR_CONFIG['interval_seconds']))
            monitor.start(interval)
        except (TypeError, ValueError) as e:
            return jsonify({'error': f'Invalid interval: {e}'}), 400

        return jsonify({
            'message': 'Continuous monitoring started',
            'interval_seconds': interval,
            'state': _serialize_state(monitor.get_state())
        })

    @app.route('/api/monitoring/stop', methods=['POST'])
    @require_secret
    def stop_monitoring():
        data = request.get_json(silent=True) or {}
        if data.get('force'):
            monitor.force_stop()
        else:
            monitor.stop()

        return jsonify({
            'message': 'Monitoring force stopped' if data.get('force') else 'Monitoring stopped',
            'state': _serialize_state(monitor.get_state())
        })

    @app.route('/api/monitoring/status', methods=['GET'])
    def monitoring_status():
        return jsonify({'state': _serialize_state(monitor.get_state())})

    @app.route('/api/monitoring/history/<camera_id>', methods=['DELETE'])
    @require_secret
    def reset_history(camera_id):
        """Forget a camera's status history after manual intervention"""
        cleared = history.reset(camera_id)
        return jsonify({'success': True, 'camera_id': camera_id, 'cleared': cleared})

    @app.route('/api/monitoring/history', methods=['DELETE'])
    @require_secret
    def reset_all_history():
        history.reset_all()
        return jsonify({'success': True})

    @app.route('/api/notifier/status', methods=['GET'])
    def notifier_status():
        if notifier is None:
            return jsonify({'status': 'disabled'})
        if hasattr(notifier, 'check_status'):
            return jsonify(notifier.check_status())
        return jsonify({'status': 'enabled' if getattr(notifier, 'enabled', True) else 'disabled'})

    @app.route('/api/cron/monitor', methods=['POST'])
    @require_secret
    def cron_monitor():
        """Run one monitoring cycle synchronously"""
        logger.info("[CRON] Starting camera monitoring")
        try:
            summary = monitor.run_once()
        except Exception as e:
            logger.error(f"[CRON] Error: {e}")
            return jsonify({'error': 'Monitoring failed'}), 500

        return jsonify({
            'message': 'Monitoring completed' if summary.total else 'No cameras',
            'total': summary.total,
            'succeeded': summary.succeeded,
            'failed': summary.failed,
            'results': [r.to_dict() for r in summary.results]
        })

    @app.route('/api/test-ping', methods=['POST'])
    def test_ping():
        data = request.get_json(silent=True) or {}
        ip = data.get('ip')
        if not ip:
            return jsonify({'error': 'ip required'}), 400

        alive = prober(ip)
        return jsonify({
            'success': True,
            'alive': alive,
            'ip': ip,
            'message': 'Camera online' if alive else 'Camera offline'
        })

    @app.route('/api/daily-report', methods=['POST'])
    @require_secret
    def send_daily_report():
        if not daily_report:
            return jsonify({'error': 'Daily report not available'}), 503

        result = daily_report.send()
        if not result['success']:
            return jsonify({'error': 'Failed to send daily report', 'details': result['error']}), 500

        return jsonify({
            'message': 'Daily report sent successfully',
            'data': {
                'offline_count': result['offline_count'],
                'date_error_count': result['date_error_count'],
                'total_count': result['total_count'],
            }
        })

    @app.route('/api/logs/<camera_id>', methods=['GET'])
    def camera_logs(camera_id):
        try:
            limit = min(request.args.get('limit', 50, type=int), 500)
            return jsonify(store.get_camera_logs(camera_id, limit))
        except Exception as e:
            logger.error(f"Error getting logs for {camera_id}: {e}")
            return jsonify({'error': str(e)}), 500

    return app


# =============================================================================
# MAIN
# =============================================================================

def main():
    """Main entry point"""
    setup_logging()
    logger.info("=" * 70)
    logger.info(f"Camera Health Monitor v{VERSION}")
    logger.info("=" * 70)

    db_manager = DatabaseManager(DB_CONFIG)
    store = SqlCameraStore(db_manager)
    store.ensure_tables_exist()

    notifier = create_notifier(NOTIFY_CONFIG, EMAIL_CONFIG)
    destination = NOTIFY_CONFIG['destination'] or ','.join(EMAIL_CONFIG['recipients'])

    prober = partial(ping_camera,
                     timeout=MONITOR_CONFIG['ping_timeout'],
                     overall_timeout=MONITOR_CONFIG['ping_overall_timeout'])

    camera_monitor = CameraMonitor(
        store,
        notifier=notifier,
        history=StatusHistoryTracker(
            consecutive_threshold=MONITOR_CONFIG['consecutive_threshold'],
            min_log_interval=timedelta(seconds=MONITOR_CONFIG['min_log_interval'])
        ),
        extractor=DeviceTimeExtractor(timeout=MONITOR_CONFIG['scrape_timeout']),
        prober=prober,
        alert_destination=destination,
        max_workers=MONITOR_CONFIG['max_workers']
    )
    monitor = ContinuousMonitor(camera_monitor)

    daily_report = DailyReport(store, notifier, destination)
    report_scheduler = ReportScheduler(daily_report, REPORT_CONFIG)
    report_scheduler.start()

    if MONITOR_CONFIG['autostart']:
        monitor.start(MONITOR_CONFIG['interval_seconds'])

    if not FLASK_CONFIG['cron_secret']:
        logger.warning("CRON_SECRET not set - control endpoints are unauthenticated")

    app = create_app(monitor, store, daily_report, prober, FLASK_CONFIG['cron_secret'], notifier)

    logger.info(f"API Server: http://{FLASK_CONFIG['host']}:{FLASK_CONFIG['port']}")
    try:
        app.run(
            host=FLASK_CONFIG['host'],
            port=FLASK_CONFIG['port'],
            debug=FLASK_CONFIG['debug'],
            threaded=True
        )
    finally:
        monitor.stop()
        report_scheduler.stop()
        db_manager.close()


if __name__ == "__main__":
    main()
