"""HTML for the browser interface.

One toggle per relay; flipping it calls the plain-text `/gpio` API from
the page script, so the page and API always share one code path.
"""
from __future__ import annotations

from html import escape
from typing import Callable

from .types import NoDeviceFound, RelayError, RelayState, Result

PROJECT_URL = "https://github.com/ondrej1024/crelay"

_STYLE = """<style>
.switch { position: relative; display: inline-block; width: 60px; height: 34px; }
.switch input { opacity: 0; width: 0; height: 0; }
.slider { position: absolute; cursor: pointer; top: 0; left: 0; right: 0; bottom: 0;
  background-color: #ccc; -webkit-transition: .4s; transition: .4s; }
.slider:before { position: absolute; content: ""; height: 26px; width: 26px; left: 4px; bottom: 4px;
  background-color: white; -webkit-transition: .4s; transition: .4s; }
input:checked + .slider { background-color: #2196F3; }
input:focus + .slider { box-shadow: 0 0 1px #2196F3; }
input:checked + .slider:before { -webkit-transform: translateX(26px); -ms-transform: translateX(26px); transform: translateX(26px); }
body { font-family: Helvetica, Arial, sans-serif; }
table { width: 460px; }
</style>"""

# Reverts the toggle when the API call fails.
_SCRIPT = """<script type="text/javascript">
function switch_relay(checkboxElem) {
  var status = checkboxElem.checked ? 1 : 0;
  var url = '/gpio?pin=' + checkboxElem.id + '&status=' + status;
  var xmlHttp = new XMLHttpRequest();
  xmlHttp.onreadystatechange = function () {
    if (this.readyState < 4) {
      document.getElementById('status').innerHTML = '';
    } else if (this.status == 0) {
      document.getElementById('status').innerHTML = 'Network error';
      checkboxElem.checked = (status == 0);
    } else if (this.status != 200) {
      document.getElementById('status').innerHTML = this.statusText;
      checkboxElem.checked = (status == 0);
    }
  };
  xmlHttp.open('GET', url, true);
  xmlHttp.send(null);
}
</script>"""


def _header() -> str:
    return (
        "<!DOCTYPE html>\n<html><head><meta charset=\"utf-8\"><title>Relay Card Control</title>\n"
        f"{_STYLE}\n{_SCRIPT}\n</head>\n<body>\n"
        "<table style=\"background-color: #2196F3; font-weight: bold; color: white;\" cellpadding=\"2\">"
        "<tbody><tr><td><span style=\"font-size: 48px;\">Relay Card Control</span><br>"
        "<span style=\"font-size: 16px; color: rgb(204, 255, 255);\">Remote relay card control "
        "<span style=\"font-style: italic; color: white;\">made easy</span></span>"
        "</td></tr></tbody></table><br>\n"
    )


def _footer(version: str) -> str:
    return (
        "<table style=\"background-color: #2196F3;\" cellpadding=\"2\"><tbody>"
        "<tr><td style=\"text-align: center;\"><span style=\"color: white;\">"
        f"<a style=\"text-decoration: none; color: white;\" href=\"{PROJECT_URL}\">crelay</a>"
        f" | version {escape(version)}</span></td></tr></tbody></table>\n</body></html>\n"
    )


def _error_block(error: RelayError) -> str:
    if isinstance(error, NoDeviceFound):
        title = "No compatible relay card detected !"
        details = (
            "This can be due to the following reasons:"
            "<div>- No supported relay card is connected via USB cable</div>"
            "<div>- The relay card is connected but it is broken</div>"
            "<div>- There is no GPIO sysfs support available or GPIO pins not defined in the config file</div>"
            "<div>- You don't have permission to access the device</div>"
        )
    else:
        title = "Relay card error"
        details = f"<div>{escape(str(error))}</div>"
    return (
        "<br><table style=\"background-color: yellow; font-weight: bold; color: black;\" cellpadding=\"2\">"
        f"<tbody><tr style=\"font-size: 20px;\"><td>{title}<br>"
        "<span style=\"font-size: 14px; color: grey; font-weight: normal;\">"
        f"{details}</span></td></tr></tbody></table><br>\n"
    )


def _relay_table(result: Result, label: Callable[[int], str]) -> str:
    card = result.card
    assert card is not None
    rows = [
        "<table style=\"background-color: white; font-weight: bold; font-size: 20px;\" cellpadding=\"2\" cellspacing=\"3\"><tbody>",
        "<tr style=\"font-size: 14px; background-color: lightgrey\">"
        f"<td style=\"width: 200px;\">{escape(card.name)}<br>"
        f"<span style=\"font-style: italic; font-size: 12px; color: grey; font-weight: normal;\">on {escape(card.port)}</span></td>"
        "<td style=\"background-color: white;\"></td></tr>",
    ]
    for ch, state in result.states.items():
        checked = " checked" if state is RelayState.ON else ""
        rows.append(
            "<tr style=\"vertical-align: top; background-color: rgb(230, 230, 255);\">"
            f"<td style=\"width: 300px;\">Relay {ch}<br>"
            f"<span style=\"font-style: italic; font-size: 16px; color: grey;\">{escape(label(ch))}</span></td>"
            "<td style=\"text-align: center; vertical-align: middle; width: 100px; background-color: white;\">"
            f"<label class=\"switch\"><input type=\"checkbox\"{checked} id=\"{ch}\" onchange=\"switch_relay(this)\">"
            "<span class=\"slider\"></span></label></td></tr>"
        )
    rows.append("</tbody></table><br>")
    rows.append("<span id=\"status\" style=\"font-size: 16px; color: red;\"></span><br><br>\n")
    return "\n".join(rows)


def render_page(result: Result, label: Callable[[int], str], version: str) -> str:
    body = _error_block(result.error) if result.error is not None else _relay_table(result, label)
    return _header() + body + _footer(version)
