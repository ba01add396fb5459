# Overview: Flask API routes for day-end analytics; JSON, spreadsheet and printable report.

import io

from flask import Blueprint, jsonify, request, send_file

from ..services import export_service, receipt_service
from ..services.analytics_service import ReportError
from ..services.terminal_service import get_terminal
from ..time_utils import parse_local_date, utcnow, local_date

analytics_bp = Blueprint("analytics", __name__, url_prefix="/api/analytics")


def _report():
    """
    Query params:
    - date: YYYY-MM-DD calendar day (default: today in the report timezone)
    - tz: IANA timezone (default: REPORT_TIMEZONE, else server local time)
    """
    terminal = get_terminal()
    tz = request.args.get("tz") or terminal.report_timezone
    try:
        day = parse_local_date(request.args.get("date"))
    except ValueError:
        raise ReportError("date must be YYYY-MM-DD")
    if day is None:
        day = local_date(utcnow(), tz)
    return terminal, terminal.daily_report(day, tz)


@analytics_bp.get("/daily")
def daily():
    try:
        _, report = _report()
    except (ReportError, KeyError, ValueError) as e:
        return jsonify({"error": str(e)}), 400
    return {"report": report.to_dict()}


@analytics_bp.get("/daily/export")
def daily_export():
    try:
        _, report = _report()
    except (ReportError, KeyError, ValueError) as e:
        return jsonify({"error": str(e)}), 400
    wb = export_service.day_report_workbook(report)
    return send_file(
        io.BytesIO(export_service.workbook_bytes(wb)),
        mimetype=export_service.XLSX_MIMETYPE,
        as_attachment=True,
        download_name=export_service.export_filename("Z_Report", report.day),
    )


@analytics_bp.get("/daily/print")
def daily_print():
    try:
        terminal, report = _report()
    except (ReportError, KeyError, ValueError) as e:
        return jsonify({"error": str(e)}), 400
    return receipt_service.render_day_report(report, terminal.state.shop)
