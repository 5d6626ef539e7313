from __future__ import annotations

import argparse
import json
import logging
import os
import signal
import sys
import time
from pathlib import Path

from ports_core.logging_config import setup_logging
from ports_core.modules.actions import kill_processes
from ports_core.monitor import PortMonitor
from ports_core.search import filter_ports, group_by_process
from ports_core.settings import load_settings, set_setting

logger = logging.getLogger(__name__)

RUNTIME_DIR = Path(".ports")
STATE_DIR = RUNTIME_DIR / "state"
PID_FILE = STATE_DIR / "web.pid"
URL_FILE = STATE_DIR / "web.url"


def _ensure_runtime() -> None:
    STATE_DIR.mkdir(parents=True, exist_ok=True)


def _monitor(settings: dict) -> PortMonitor:
    return PortMonitor(
        refresh_interval=float(settings["refresh_interval"]),
        lsof_path=settings["lsof_path"],
    )


def _scan_now(settings: dict) -> list | None:
    with _monitor(settings) as monitor:
        return monitor.scan()


def _dump(obj) -> None:
    print(json.dumps(obj, indent=2))


def _render(records, grouped: bool) -> dict:
    if grouped:
        return {
            "ok": True,
            "groups": [
                {"process": name, "items": [r.to_dict() for r in items]}
                for name, items in group_by_process(records)
            ],
        }
    return {"ok": True, "items": [r.to_dict() for r in records]}


def cmd_list(search: str, grouped: bool) -> int:
    settings = load_settings()
    records = _scan_now(settings)
    if records is None:
        _dump({"ok": False, "message": "lsof produced no data"})
        return 2
    # searching always shows the flat list
    _dump(_render(filter_ports(records, search), grouped and not search))
    return 0


def cmd_watch(interval: float | None) -> int:
    if interval is not None and not interval > 0:
        _dump({"ok": False, "message": f"--interval must be positive, got {interval}"})
        return 2
    settings = load_settings()
    if interval is not None:
        settings["refresh_interval"] = interval
    monitor = _monitor(settings)

    def show(ports) -> None:
        print(json.dumps({"version": monitor.version, "items": [r.to_dict() for r in ports]}), flush=True)

    monitor.subscribe(show)
    monitor.start_monitoring()
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        pass
    finally:
        monitor.stop()
    return 0


def cmd_kill(pids: list[str]) -> int:
    settings = load_settings()
    results = kill_processes(pids, kill_path=settings["kill_path"])
    _dump({"ok": all(r.ok for r in results), "results": [r.to_dict() for r in results]})
    return 0 if all(r.ok for r in results) else 2


def cmd_kill_matching(query: str) -> int:
    settings = load_settings()
    records = _scan_now(settings) or []
    targets = filter_ports(records, query)
    if not targets:
        _dump({"ok": False, "message": f"no ports match {query!r}"})
        return 2
    results = kill_processes(targets, kill_path=settings["kill_path"])
    _dump({"ok": all(r.ok for r in results), "results": [r.to_dict() for r in results]})
    return 0 if all(r.ok for r in results) else 2


def cmd_config_show() -> int:
    _dump(load_settings())
    return 0


def cmd_config_set(key: str, value: str) -> int:
    try:
        data = set_setting(key, value)
    except ValueError as e:
        _dump({"ok": False, "message": f"invalid value for {key}: {e}"})
        return 2
    _dump({"ok": True, "settings": data})
    return 0


def _is_web_running() -> bool:
    if not URL_FILE.exists():
        return False
    url = URL_FILE.read_text(encoding="utf-8").strip()
    if not url:
        return False
    try:
        import urllib.request
        with urllib.request.urlopen(url + "/api/health", timeout=1.2) as r:
            return r.status == 200
    except OSError:
        return False


def cmd_status() -> int:
    _ensure_runtime()
    status = {
        "web_running": _is_web_running(),
        "web_url": URL_FILE.read_text(encoding="utf-8").strip() if URL_FILE.exists() else None,
    }
    _dump(status)
    return 0


def cmd_web_start(host: str | None = None, port: int | None = None) -> int:
    _ensure_runtime()
    settings = load_settings()
    host = host or settings["web_host"]
    port = port or int(settings["web_port"])
    if _is_web_running():
        print("[OK] Web already running.")
        return 0

    PID_FILE.unlink(missing_ok=True)
    URL_FILE.unlink(missing_ok=True)

    import subprocess
    cmd = [
        sys.executable, "-m", "uvicorn",
        "ports_core.web.app:app",
        "--host", host,
        "--port", str(port),
    ]
    p = subprocess.Popen(cmd, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)  # noqa: S603
    PID_FILE.write_text(str(p.pid), encoding="utf-8")
    url = f"http://{host}:{port}"
    URL_FILE.write_text(url, encoding="utf-8")
    logger.info(f"Web started at {url}", extra={"pid": p.pid})
    print(f"[OK] Web started: {url}")
    return 0


def web_url() -> str:
    if URL_FILE.exists():
        return URL_FILE.read_text(encoding="utf-8").strip()
    settings = load_settings()
    return f"http://{settings['web_host']}:{settings['web_port']}"


def cmd_web_open() -> int:
    _ensure_runtime()
    url = web_url()
    import webbrowser
    webbrowser.open(url)
    print(f"[OK] Opened: {url}")
    return 0


def cmd_web_stop() -> int:
    _ensure_runtime()
    if not PID_FILE.exists():
        print("[OK] Web not running.")
        return 0

    pid_str = PID_FILE.read_text(encoding="utf-8").strip()
    PID_FILE.unlink(missing_ok=True)
    URL_FILE.unlink(missing_ok=True)
    try:
        pid = int(pid_str)
    except ValueError:
        print("[WARN] Invalid PID file.")
        return 0

    try:
        os.kill(pid, signal.SIGTERM)
    except ProcessLookupError:
        logger.info("Web server already gone", extra={"pid": pid})
    except OSError as e:
        logger.warning(f"Could not stop web server: {e}", extra={"pid": pid})

    print("[OK] Web stopped.")
    return 0


def cmd_tray() -> int:
    _ensure_runtime()
    from ports_core.tray import run_tray
    run_tray()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ports", description="Ports - localhost TCP listeners, with kill")
    parser.add_argument("--log-level", type=str, default=None)
    parser.add_argument("--json-logs", action="store_true")
    sub = parser.add_subparsers(dest="cmd", required=True)

    list_p = sub.add_parser("list", help="List localhost TCP ports")
    list_p.add_argument("--search", type=str, default="", help="Process name, port fragment, or range like 5000-7000 / 5000-")
    list_p.add_argument("--grouped", action="store_true", help="Group by process")

    watch_p = sub.add_parser("watch", help="Print the port list every time it changes")
    watch_p.add_argument("--interval", type=float, default=None)

    kill_p = sub.add_parser("kill", help="Force-kill processes by PID")
    kill_p.add_argument("pids", nargs="+")

    km = sub.add_parser("kill-matching", help="Force-kill every process whose port matches a search")
    km.add_argument("query", type=str)

    sub.add_parser("status", help="Show runtime status")

    config_p = sub.add_parser("config", help="Settings")
    config_sub = config_p.add_subparsers(dest="config_cmd", required=True)
    config_sub.add_parser("show", help="Show settings")
    cs = config_sub.add_parser("set", help="Set a setting")
    cs.add_argument("key", type=str)
    cs.add_argument("value", type=str)

    web_p = sub.add_parser("web", help="Control local web UI")
    web_sub = web_p.add_subparsers(dest="webcmd", required=True)
    web_start = web_sub.add_parser("start", help="Start web UI server")
    web_start.add_argument("--host", type=str, default=None)
    web_start.add_argument("--port", type=int, default=None)
    web_sub.add_parser("open", help="Open web UI in browser")
    web_sub.add_parser("stop", help="Stop web UI server")

    sub.add_parser("tray", help="Run tray app")
    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)

    settings = load_settings()
    setup_logging(
        args.log_level or settings["log_level"],
        json_logs=args.json_logs or settings["log_format"] == "json",
    )

    rc = 0
    if args.cmd == "list":
        rc = cmd_list(args.search, args.grouped)
    elif args.cmd == "watch":
        rc = cmd_watch(args.interval)
    elif args.cmd == "kill":
        rc = cmd_kill(args.pids)
    elif args.cmd == "kill-matching":
        rc = cmd_kill_matching(args.query)
    elif args.cmd == "status":
        rc = cmd_status()
    elif args.cmd == "config":
        if args.config_cmd == "show":
            rc = cmd_config_show()
        else:
            rc = cmd_config_set(args.key, args.value)
    elif args.cmd == "web":
        if args.webcmd == "start":
            rc = cmd_web_start(args.host, args.port)
        elif args.webcmd == "open":
            rc = cmd_web_open()
        elif args.webcmd == "stop":
            rc = cmd_web_stop()
    elif args.cmd == "tray":
        rc = cmd_tray()

    raise SystemExit(rc)


if __name__ == "__main__":
    main()
