"""
HTML pages and QR codes for shareable reports
"""

from html import escape
from typing import Iterable, Optional
from urllib.parse import quote

import segno
from fastapi import Request

from caregiver_card.config import settings
from caregiver_card.models.db_models import Report
from caregiver_card.services.deid_service import deidentify


def esc(value: Optional[str]) -> str:
    return escape(str(value or ""), quote=True)


def share_base_url(request: Request) -> str:
    """Configured public URL, otherwise derived from proxy headers or Host."""
    configured = (settings.public_base_url or "").strip()
    if configured:
        return configured.rstrip("/")
    proto = request.headers.get("x-forwarded-proto", request.url.scheme).split(",")[0].strip()
    host = request.headers.get("x-forwarded-host") or request.headers.get("host") or request.url.netloc
    return f"{proto}://{host}"


def make_qr_data_url(url: str) -> str:
    return segno.make(url, error="m").png_data_uri(scale=4)


def _page(title: str, body: str, script: Optional[str] = None) -> str:
    script_tag = f'\n<script src="/static/{script}" defer></script>' if script else ""
    return f"""<!doctype html>
<html>
<head>
  <meta charset="utf-8"/>
  <title>{esc(title)}</title>
  <meta name="viewport" content="width=device-width, initial-scale=1"/>
  <link rel="stylesheet" href="/static/styles.css"/>{script_tag}
</head>
<body>
<div class="container">
{body}
</div>
</body>
</html>"""


_LOGOUT_FORM = '<form method="POST" action="/logout" style="display:inline"><button class="btn" type="submit">Log out</button></form>'


def render_login(error: Optional[str] = None) -> str:
    message = f'<p class="error">{esc(error)}</p>' if error else ""
    return _page("Sign in", f"""
  <h3>Sign in</h3>
  {message}
  <form method="POST" action="/login">
    <input name="userId" placeholder="User ID"><br/>
    <input name="password" type="password" placeholder="Password"><br/>
    <button>Sign In</button>
  </form>""")


def _text_input(name: str, label: str) -> str:
    return f'<label>{esc(label)} <input name="{name}"/></label>'


def _audio_input(name: str, label: str) -> str:
    return (
        f'<div class="recorder"><span>{esc(label)}</span> '
        f'<button class="btn" type="button" data-record="{name}">Record</button> '
        f'<span class="muted" data-record-status="{name}"></span> '
        f'<input type="file" name="{name}" accept="audio/*"/></div>'
    )


def render_upload_form() -> str:
    contact_fields = [
        ("name", "Name"), ("email", "Email"), ("blood_type", "Blood type"),
        ("emer_name", "Emergency contact"), ("emer_phone", "Emergency phone"), ("emer_email", "Emergency email"),
        ("doctor_name", "Doctor"), ("doctor_address", "Doctor address"), ("doctor_phone", "Doctor phone"),
        ("doctor_fax", "Doctor fax"), ("doctor_email", "Doctor email"),
        ("pharmacy_name", "Pharmacy"), ("pharmacy_address", "Pharmacy address"),
        ("pharmacy_phone", "Pharmacy phone"), ("pharmacy_fax", "Pharmacy fax"),
    ]
    status_fields = [
        ("bp", "Blood pressure"), ("weight", "Weight"), ("typed_meds", "Medications"),
        ("typed_allergies", "Allergies"), ("typed_conditions", "Conditions"), ("typed_general", "Journal"),
    ]
    languages = "".join(
        f'<option value="{esc(code)}">{esc(name)}</option>' for code, name in settings.language_names.items()
    )
    return _page("Caregiver Card", f"""
  <header class="head">
    <h1>Caregiver Card</h1>
    <nav class="bar"><a class="btn" href="/reports">Open Reports</a> {_LOGOUT_FORM}</nav>
  </header>
  <form id="reportForm" method="POST" action="/v1/reports" enctype="multipart/form-data">
    <section class="card"><h2>Patient</h2>{"".join(_text_input(n, l) for n, l in contact_fields)}
      {_audio_input("audio_patientfree", "Patient details (voice)")}
    </section>
    <section class="card"><h2>Status</h2>{"".join(_text_input(n, l) for n, l in status_fields)}
      {_audio_input("audio_statusfree", "Status (voice)")}
      {_audio_input("audio_classic", "Voice note")}
    </section>
    <label>Translate to <select name="lang"><option value="">(none)</option>{languages}</select></label>
    <button class="btn" type="submit">Create report</button>
  </form>
  <p class="error" id="error"></p>
  <div id="result" class="muted"></div>""", script="app.js")


def render_report_list(reports: Iterable[Report]) -> str:
    items = "".join(
        f"""
    <li class="report-item">
      <div class="title">Report for {esc(r.name) or "Unknown"}</div>
      <div class="meta">{esc(r.created_at)} • {esc(r.email)}</div>
      <div class="actions"><a class="btn" href="/reports/{esc(r.id)}" target="_blank" rel="noopener">Open</a></div>
    </li>"""
        for r in reports
    ) or '<li class="report-item">No reports yet.</li>'
    return _page("Reports", f"""
  <header class="head">
    <h1>Caregiver Card — Reports</h1>
    <nav class="bar"><a class="btn" href="/">New Report</a> {_LOGOUT_FORM}</nav>
  </header>
  <ul class="list">{items}</ul>""")


def share_body(report: Report) -> str:
    """Plain-text e-mail body used for the Gmail/Outlook share links"""
    return "\n".join([
        f"Shareable link: {report.share_url}",
        "",
        f"Patient: {report.name or ''} • {report.email or ''} • Blood: {report.blood_type or ''}",
        f"Emergency: {report.emer_name or ''} ({report.emer_phone or ''}) {report.emer_email or ''}",
        f"Doctor: {report.doctor_name or ''} • {report.doctor_phone or ''} • {report.doctor_fax or ''} • {report.doctor_email or ''}",
        f"Pharmacy: {report.pharmacy_name or ''} • {report.pharmacy_phone or ''} • {report.pharmacy_fax or ''}",
        "",
        f"Summary:\n{report.summary_text or ''}",
    ])


def _mailto(address: Optional[str]) -> str:
    if not address:
        return ""
    return f'<a href="mailto:{esc(address)}">{esc(address)}</a>'


def _dual_block(title: str, original_label: str, target_label: str, original: str, translated: str) -> str:
    return f"""
  <section class="card">
    <h2>{esc(title)}</h2>
    <div class="dual">
      <div class="block"><h3>{esc(original_label)}</h3><pre class="pre">{esc(original)}</pre></div>
      <div class="block"><h3>{esc(target_label)}</h3><pre class="pre">{esc(translated or "(no translation)")}</pre></div>
    </div>
  </section>"""


def render_report(report: Report, redact: bool = False) -> str:
    """Single report page. With redact=True transcripts are shown through the PHI filter."""
    detected = settings.language_label(report.detected_lang)
    target = settings.language_label(report.target_lang)

    transcript = report.transcript or ""
    translated_transcript = report.translated_transcript or ""
    if redact:
        transcript = deidentify(transcript)
        translated_transcript = deidentify(translated_transcript)

    subject = quote(f"Caregiver Card — {report.name or ''}")
    body = quote(share_body(report))
    gmail = f"https://mail.google.com/mail/?view=cm&fs=1&su={subject}&body={body}"
    outlook = f"https://outlook.office.com/mail/deeplink/compose?subject={subject}&body={body}"

    pills = ""
    if report.detected_lang:
        pills += f'<span class="pill">Original: {esc(detected)}</span>'
    if report.target_lang:
        pills += f'<span class="pill">Target: {esc(target)}</span>'
    redact_toggle = (
        f'<a class="btn" href="/reports/{esc(report.id)}">Show full transcript</a>' if redact
        else f'<a class="btn" href="/reports/{esc(report.id)}?redact=1">Hide personal details</a>'
    )

    return _page("Caregiver Card — Report", f"""
  <header class="head">
    <h1>Caregiver Card — Report</h1>
    <div class="pillrow">{pills}</div>
    <div class="meta"><b>Created:</b> {esc(report.created_at)}</div>
  </header>

  <section class="card">
    <h2>Patient Details</h2>
    <div class="grid2">
      <div><b>Name:</b> {esc(report.name)}</div>
      <div><b>Email:</b> {_mailto(report.email)}</div>
      <div><b>Blood Type:</b> {esc(report.blood_type)}</div>
      <div><b>Emergency Contact:</b> {esc(report.emer_name)} {f"({esc(report.emer_phone)})" if report.emer_phone else ""} {_mailto(report.emer_email)}</div>
      <div><b>Doctor:</b> {esc(report.doctor_name)} • {esc(report.doctor_address)} • {esc(report.doctor_phone)} • {esc(report.doctor_fax)} • {_mailto(report.doctor_email)}</div>
      <div><b>Pharmacy:</b> {esc(report.pharmacy_name)} • {esc(report.pharmacy_address)} • {esc(report.pharmacy_phone)} • {esc(report.pharmacy_fax)}</div>
    </div>
  </section>
{_dual_block("Summary", detected, target, report.summary_text or "", report.translated_summary or "")}
{_dual_block("Transcript", detected, target, transcript, translated_transcript)}
  <section class="card">
    <h2>Share / Print</h2>
    <div class="sharebar">
      <a class="btn" href="{esc(report.share_url)}" target="_blank" rel="noopener">Link</a>
      <a class="btn" href="{esc(gmail)}" target="_blank" rel="noopener">Gmail</a>
      <a class="btn" href="{esc(outlook)}" target="_blank" rel="noopener">Outlook</a>
      {redact_toggle}
      <button class="btn" onclick="window.print()">Print</button>
    </div>
    <div class="qr">
      <img src="{esc(report.qr_data_url)}" alt="QR"/>
      <div class="muted">Scan on a phone or use the link button.</div>
    </div>
  </section>

  <div class="bar">
    <a class="btn" href="/">+ New Report</a>
    <a class="btn" href="/reports">Open Reports</a>
    {_LOGOUT_FORM}
  </div>""")
