"""Writes a MapView out as a standalone Leaflet HTML page."""
import html
import json
import logging
import os
import tempfile
from string import Template
from map_layout import MapView


LEAFLET_VERSION = "1.9.4"

PAGE_TEMPLATE = Template("""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width, initial-scale=1">
<title>$title</title>
<link rel="stylesheet" href="https://unpkg.com/leaflet@$leaflet_version/dist/leaflet.css">
<script src="https://unpkg.com/leaflet@$leaflet_version/dist/leaflet.js"></script>
<style>
  body { margin: 0; font-family: sans-serif; }
  .app-header { height: 100px; box-sizing: border-box; padding: 8px 16px; background: #0b3d5c; color: #fff; }
  .app-header h1 { margin: 0 0 6px 0; font-size: 20px; }
  .wind-info { display: flex; gap: 18px; flex-wrap: wrap; }
  .wind-stat .label { opacity: 0.8; margin-right: 4px; }
  .updated { font-size: 11px; opacity: 0.7; margin-top: 6px; text-align: center; }
  #map { height: calc(100vh - 100px); width: 100%; }
  .wind-arrow-icon { background: none; border: none; }
  .popup-subtitle { font-size: 11px; color: #666; margin-top: 4px; }
  .popup-footer { font-size: 10px; color: #888; margin-top: 6px; }
</style>
</head>
<body>
<header class="app-header">
  <h1>$title</h1>
$header_html
</header>
<div id="map"></div>
<script>
const MAP_DATA = $map_json;
const POSITION_KEY = "mapPosition";

function restoreView(fallback) {
  try {
    const saved = window.localStorage.getItem(POSITION_KEY);
    if (saved) {
      const pos = JSON.parse(saved);
      if (Array.isArray(pos.center) && pos.center.length === 2 && typeof pos.zoom === "number") {
        return pos;
      }
    }
  } catch (e) {
    console.error("Failed to restore map position", e);
  }
  return fallback;
}

function popupContent(popup) {
  const root = document.createElement("div");
  const title = document.createElement("strong");
  title.textContent = popup.title;
  root.appendChild(title);
  if (popup.subtitle) {
    const sub = document.createElement("div");
    sub.className = "popup-subtitle";
    sub.textContent = popup.subtitle;
    root.appendChild(sub);
  }
  for (const [label, value] of popup.lines) {
    root.appendChild(document.createElement("br"));
    const b = document.createElement("strong");
    b.textContent = label + ": ";
    root.appendChild(b);
    root.appendChild(document.createTextNode(value));
  }
  if (popup.footer) {
    const foot = document.createElement("div");
    foot.className = "popup-footer";
    foot.textContent = popup.footer;
    root.appendChild(foot);
  }
  return root;
}

const start = restoreView(MAP_DATA.view);
const map = L.map("map").setView(start.center, start.zoom);
const baseLayers = {};
const overlays = {};

for (const op of MAP_DATA.ops) {
  if (op.type === "tile_layer") {
    const options = { attribution: op.attribution };
    if (op.opacity !== undefined) options.opacity = op.opacity;
    if (op.min_zoom !== undefined) options.minZoom = op.min_zoom;
    if (op.max_zoom !== undefined) options.maxZoom = op.max_zoom;
    const layer = L.tileLayer(op.url, options);
    (op.base ? baseLayers : overlays)[op.name] = layer;
    if (op.checked) layer.addTo(map);
  } else if (op.type === "marker") {
    L.marker([op.lat, op.lng], { zIndexOffset: op.z_index_offset })
      .bindPopup(popupContent(op.popup), { maxWidth: 300 })
      .addTo(map);
  } else if (op.type === "arrow") {
    const icon = L.divIcon({ html: op.svg, className: "wind-arrow-icon", iconSize: [60, 60], iconAnchor: [30, 30] });
    L.marker([op.lat, op.lng], { icon: icon })
      .bindTooltip(op.tooltip, { permanent: false, direction: "top", offset: [0, -20] })
      .addTo(map);
  }
}
L.control.layers(baseLayers, overlays, { position: "topright" }).addTo(map);

map.on("moveend", function () {
  const c = map.getCenter();
  window.localStorage.setItem(POSITION_KEY, JSON.stringify({ center: [c.lat, c.lng], zoom: map.getZoom() }));
});
</script>
</body>
</html>
""")


def render_header(map_view: MapView) -> str:
    """HTML for the header stats, or the loading notice when there is no wind yet."""
    if map_view.loading:
        return '  <div class="loading">Loading wind data...</div>'
    stats = "\n".join(
        f'    <div class="wind-stat"><span class="label">{html.escape(label)}:</span>'
        f'<span class="value">{html.escape(value)}</span></div>'
        for label, value in map_view.header
    )
    parts = [f'  <div class="wind-info">\n{stats}\n  </div>']
    if map_view.updated_text:
        parts.append(f'  <div class="updated">{html.escape(map_view.updated_text)}</div>')
    return "\n".join(parts)


def _script_json(data) -> str:
    # "</" would end the <script> element early
    return json.dumps(data, ensure_ascii=False).replace("</", "<\\/")


def render_page(map_view: MapView) -> str:
    """
    Render the full HTML document.

    Args:
        map_view: Output of map_layout.calculate_map

    Returns:
        HTML text
    """
    map_data = {
        "view": map_view.view.to_dict(),
        "ops": [op.to_dict() for op in map_view.ops],
    }
    return PAGE_TEMPLATE.substitute(
        title=html.escape(map_view.title),
        leaflet_version=LEAFLET_VERSION,
        header_html=render_header(map_view),
        map_json=_script_json(map_data),
    )


def write_page(map_view: MapView, path: str) -> str:
    """
    Write the page to `path`, replacing any previous version atomically.

    Returns:
        Absolute path written
    """
    path = os.path.abspath(path)
    directory = os.path.dirname(path)
    os.makedirs(directory, exist_ok=True)
    page = render_page(map_view)
    fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".windmap-", suffix=".html")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(page)
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise
    logging.info(
        f"Map page written: {path} ({len(map_view.ops_of_type('marker'))} markers, "
        f"{len(map_view.ops_of_type('arrow'))} arrows, loading={map_view.loading})"
    )
    return path
