#!/usr/bin/env python3
"""Web server for real-time heading display.

Launches the heading fusion process as a subprocess and broadcasts its
snapshots to connected WebSocket clients.
"""

import argparse
import json
import logging
import subprocess
import sys
import threading
from typing import Optional

from flask import Flask, jsonify
from flask_socketio import SocketIO

from .core import Config, ConfigError, load_config
from .main import setup_logging

logger = logging.getLogger(__name__)

app = Flask(__name__)
app.config["SECRET_KEY"] = "heading_fusion_secret"
socketio = SocketIO(app, cors_allowed_origins="*")

fusion_process: Optional[subprocess.Popen] = None

_latest_lock = threading.Lock()
_latest_snapshot: Optional[dict] = None


def build_command(
    config_path: Optional[str] = None,
    use_mock: bool = False,
    replay_path: Optional[str] = None,
) -> list:
    """Command line of the fusion subprocess."""
    cmd = [sys.executable, "-m", "heading_fusion.main"]

    if config_path:
        cmd.extend(["-c", config_path])
    if use_mock:
        cmd.append("--mock")
    if replay_path:
        cmd.extend(["--replay", replay_path])
    return cmd


def start_fusion_process(
    config_path: Optional[str],
    use_mock: bool,
    replay_path: Optional[str] = None,
) -> None:
    """Start the heading fusion subprocess.

    Args:
        config_path: Path to configuration file.
        use_mock: If True, use mock sensors.
        replay_path: Replay this recording instead of reading sensors.
    """
    global fusion_process

    cmd = build_command(config_path, use_mock, replay_path)
    logger.info("Starting fusion process: %s", " ".join(cmd))

    fusion_process = subprocess.Popen(
        cmd,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        bufsize=1,
        universal_newlines=True,
    )

    stderr_thread = threading.Thread(
        target=_read_stderr,
        args=(fusion_process,),
        daemon=True,
    )
    stderr_thread.start()

    stdout_thread = threading.Thread(
        target=_read_stdout,
        args=(fusion_process,),
        daemon=True,
    )
    stdout_thread.start()

    logger.info("Fusion process started (PID: %d)", fusion_process.pid)


def _read_stderr(process: subprocess.Popen) -> None:
    """Forward the fusion process log to ours."""
    for line in process.stderr:
        line = line.rstrip()
        if line:
            logger.info("[FUSION] %s", line)


def _read_stdout(process: subprocess.Popen) -> None:
    """Relay each snapshot line of the fusion process."""
    for line in process.stdout:
        handle_line(line)

    logger.info("Fusion process terminated (exit code %s)", process.wait())


def handle_line(line: str) -> Optional[dict]:
    """Store and broadcast one JSON snapshot line.

    Returns:
        The decoded snapshot, or None if the line is empty or not JSON.
    """
    global _latest_snapshot

    line = line.strip()
    if not line:
        return None

    try:
        data = json.loads(line)
    except json.JSONDecodeError as e:
        logger.debug("Invalid JSON: %s - %s", e, line[:100])
        return None

    with _latest_lock:
        _latest_snapshot = data
    socketio.emit("heading_update", data)
    return data


def latest_snapshot() -> Optional[dict]:
    with _latest_lock:
        return _latest_snapshot


def stop_fusion_process() -> None:
    """Stop the fusion subprocess."""
    global fusion_process

    if fusion_process is not None:
        logger.info("Stopping fusion process...")
        fusion_process.terminate()
        try:
            fusion_process.wait(timeout=5.0)
        except subprocess.TimeoutExpired:
            fusion_process.kill()
        fusion_process = None


@app.route("/api/headings")
def get_headings():
    """Latest heading snapshot."""
    snapshot = latest_snapshot()
    if snapshot is None:
        return jsonify({"error": "no heading available yet"}), 503
    return jsonify(snapshot)


@socketio.on("connect")
def handle_connect():
    """Send the current snapshot to a newly connected client."""
    logger.info("WebSocket client connected")
    snapshot = latest_snapshot()
    if snapshot is not None:
        socketio.emit("heading_update", snapshot)


@socketio.on("disconnect")
def handle_disconnect():
    """Handle WebSocket client disconnection."""
    logger.info("WebSocket client disconnected")


def main(argv=None) -> int:
    """Application entry point.

    Returns:
        Exit code.
    """
    parser = argparse.ArgumentParser(
        description="Web server for live heading display"
    )
    parser.add_argument(
        "-c", "--config",
        type=str,
        default=None,
        help="Path to configuration file",
    )
    parser.add_argument(
        "--mock",
        action="store_true",
        help="Use mock sensors for testing",
    )
    parser.add_argument(
        "--replay",
        type=str,
        default=None,
        metavar="FILE",
        help="Replay a recorded CSV file",
    )
    parser.add_argument(
        "--host",
        type=str,
        default=None,
        help="Host address to bind to",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port to listen on",
    )
    args = parser.parse_args(argv)

    setup_logging()

    try:
        config = load_config(args.config)
    except (FileNotFoundError, ConfigError) as e:
        logger.warning("Could not load config: %s, using defaults", e)
        config = Config()

    host = args.host or config.web.host
    port = args.port or config.web.port

    start_fusion_process(args.config, args.mock, args.replay)

    try:
        logger.info("Web server starting on http://%s:%d", host, port)
        socketio.run(app, host=host, port=port, debug=False)

    except KeyboardInterrupt:
        logger.info("Server interrupted")

    finally:
        stop_fusion_process()

    return 0


if __name__ == "__main__":
    sys.exit(main())
