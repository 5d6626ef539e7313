from __future__ import annotations

import logging
import webbrowser

import pystray
from PIL import Image, ImageDraw

from ports_core.cli import _ensure_runtime, cmd_web_start, cmd_web_stop, web_url
from ports_core.models import PortRecord
from ports_core.modules.actions import kill_and_refresh
from ports_core.monitor import PortMonitor
from ports_core.search import split_groups
from ports_core.settings import load_settings

logger = logging.getLogger(__name__)


def _icon_image() -> Image.Image:
    # plug-socket style dot
    img = Image.new("RGBA", (64, 64), (0, 0, 0, 0))
    d = ImageDraw.Draw(img)
    d.ellipse((8, 8, 56, 56), fill=(64, 156, 255, 255))
    d.rectangle((22, 20, 28, 36), fill=(255, 255, 255, 255))
    d.rectangle((36, 20, 42, 36), fill=(255, 255, 255, 255))
    d.rectangle((20, 34, 44, 44), fill=(255, 255, 255, 255))
    return img


def _label(rec: PortRecord) -> str:
    return f":{rec.port}  {rec.process_name} ({rec.pid})"


def build_menu(monitor: PortMonitor, kill_path: str, on_quit) -> pystray.Menu:
    def kill_item(targets):
        def action(_icon, _item):
            kill_and_refresh(monitor, targets, kill_path=kill_path)
        return action

    def port_item(rec: PortRecord) -> pystray.MenuItem:
        return pystray.MenuItem(
            _label(rec),
            pystray.Menu(pystray.MenuItem(f"Kill {rec.process_name}", kill_item([rec]))),
        )

    singles, groups = split_groups(monitor.ports)

    items: list = []
    if monitor.is_loading and not monitor.ports:
        items.append(pystray.MenuItem("Scanning...", None, enabled=False))
    elif not monitor.ports:
        items.append(pystray.MenuItem("No localhost ports", None, enabled=False))

    items.extend(port_item(r) for r in singles)
    for name, recs in groups:
        sub = [port_item(r) for r in recs]
        sub.append(pystray.Menu.SEPARATOR)
        sub.append(pystray.MenuItem(f"Kill all {name}", kill_item(recs)))
        items.append(pystray.MenuItem(f"{name} ({len(recs)} ports)", pystray.Menu(*sub)))

    def refresh(_icon, _item):
        monitor.refresh_ports(show_loading=True)

    def open_ui(_icon, _item):
        cmd_web_start()
        webbrowser.open(web_url())

    items += [
        pystray.Menu.SEPARATOR,
        pystray.MenuItem("Refresh", refresh),
        pystray.MenuItem("Open Web UI", open_ui),
        pystray.MenuItem("Stop Web UI", lambda _icon, _item: cmd_web_stop()),
        pystray.Menu.SEPARATOR,
        pystray.MenuItem("Quit", on_quit),
    ]
    return pystray.Menu(*items)


def run_tray() -> None:
    _ensure_runtime()
    settings = load_settings()
    monitor = PortMonitor(
        refresh_interval=float(settings["refresh_interval"]),
        lsof_path=settings["lsof_path"],
    )

    def quit_app(icon, _item):
        try:
            monitor.stop()
        finally:
            icon.stop()

    icon = pystray.Icon("ports", _icon_image(), "Ports")

    def rebuild(_ports=None) -> None:
        icon.menu = build_menu(monitor, settings["kill_path"], quit_app)
        icon.update_menu()

    rebuild()
    monitor.subscribe(rebuild)
    # the first scan may publish nothing; redraw once it settles either way
    monitor.start_monitoring().add_done_callback(lambda _f: rebuild())
    icon.run()
