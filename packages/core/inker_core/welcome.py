"""Canned welcome screen shown by newly provisioned devices."""

from __future__ import annotations

import html

from inker_renderer.browser import apply_template

WELCOME_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
  <meta charset="UTF-8">
  <style>
    * { margin: 0; padding: 0; box-sizing: border-box; }
    body {
      width: {{width}}px;
      height: {{height}}px;
      display: flex;
      flex-direction: column;
      justify-content: center;
      align-items: center;
      background-color: white;
      color: black;
      font-family: 'Arial', 'Helvetica', sans-serif;
      text-align: center;
      padding: 40px;
    }
    .main-title { font-size: 48px; font-weight: bold; margin-bottom: 30px; letter-spacing: 2px; }
    .subtitle { font-size: 32px; margin-bottom: 20px; line-height: 1.4; }
    .device-info { font-size: 24px; margin-top: 40px; color: #333; }
    .footer { font-size: 18px; margin-top: 60px; color: #666; }
  </style>
</head>
<body>
  <div class="main-title">Hello World</div>
  <div class="subtitle">This is inker!</div>
  <div class="device-info">Device: {{device_name}}</div>
  <div class="device-info">ID: {{device_id}}</div>
  <div class="footer">Welcome to your terminal display</div>
</body>
</html>"""


def welcome_html(device_name: str, device_id: str, width: int, height: int) -> str:
    return apply_template(
        WELCOME_TEMPLATE,
        {
            "width": int(width),
            "height": int(height),
            "device_name": html.escape(device_name),
            "device_id": html.escape(device_id),
        },
    )
