import re
from datetime import datetime

from jinja2 import Template

_STYLE = """
    * { box-sizing: border-box; }
    body {
      font-family: "Segoe UI", Arial, sans-serif;
      color: #0f172a;
      margin: 24px;
      font-size: 12px;
    }
    .header {
      display: flex;
      justify-content: space-between;
      align-items: flex-start;
      padding: 18px 20px;
      border-radius: 12px;
      background: #111827;
      color: #fff;
      margin-bottom: 18px;
    }
    .title { font-size: 20px; font-weight: 700; }
    .subtitle { font-size: 11px; color: #cbd5f5; }
    .section {
      border: 1px solid #e5e7eb;
      border-radius: 12px;
      padding: 14px;
      margin-bottom: 12px;
    }
    .section h2 {
      font-size: 12px;
      margin: 0 0 8px;
      text-transform: uppercase;
      letter-spacing: 0.08em;
    }
    table { width: 100%; border-collapse: collapse; }
    th, td { text-align: left; padding: 6px 4px; border-bottom: 1px solid #e5e7eb; }
    td.num, th.num { text-align: right; }
    .totals td { border: none; }
    .grand { font-size: 14px; font-weight: 700; }
"""

_QUOTATION_TEMPLATE = Template(
    """
<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8" />
  <style>{{ style }}</style>
</head>
<body>
  <div class="header">
    <div>
      <div class="title">QUOTATION</div>
      <div class="subtitle">{{ q.quotation_number }}</div>
    </div>
    <div class="subtitle">
      {{ q.created_label }}<br />
      Valid until {{ q.valid_until or "N/A" }}
    </div>
  </div>
  <div class="section">
    <h2>Client</h2>
    <div>{{ client.name or "N/A" }}</div>
    <div>{{ client.company or "" }}</div>
    <div>{{ client.email or "" }}</div>
  </div>
  <div class="section">
    <h2>Sites</h2>
    <table>
      <thead>
        <tr><th>Site</th><th>Location</th><th class="num">Monthly rate</th><th class="num">Days</th><th class="num">Amount</th></tr>
      </thead>
      <tbody>
        {% for item in items %}
        <tr>
          <td>{{ item.name }}</td>
          <td>{{ item.location or "" }}</td>
          <td class="num">{{ "{:,.2f}".format(item.price or 0) }}</td>
          <td class="num">{{ item.duration_days }}</td>
          <td class="num">{{ "{:,.2f}".format(item.item_total_amount or 0) }}</td>
        </tr>
        {% endfor %}
      </tbody>
    </table>
  </div>
  <div class="section">
    <h2>Period</h2>
    <div>{{ q.start_date }} to {{ q.end_date }} ({{ q.duration_days }} days)</div>
    <table class="totals">
      <tr><td class="num grand">Total: PHP {{ "{:,.2f}".format(q.total_amount or 0) }}</td></tr>
    </table>
  </div>
  {% if q.notes %}
  <div class="section"><h2>Notes</h2><div>{{ q.notes }}</div></div>
  {% endif %}
</body>
</html>
"""
)

_COST_ESTIMATE_TEMPLATE = Template(
    """
<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8" />
  <style>{{ style }}</style>
</head>
<body>
  <div class="header">
    <div>
      <div class="title">COST ESTIMATE</div>
      <div class="subtitle">{{ ce.title }}</div>
    </div>
    <div class="subtitle">{{ ce.created_label }}</div>
  </div>
  <div class="section">
    <h2>Client</h2>
    <div>{{ client.contactPerson or client.name or "N/A" }}</div>
    <div>{{ client.company or "" }}</div>
    <div>{{ client.email or "" }}</div>
  </div>
  <div class="section">
    <h2>Line items</h2>
    <table>
      <thead>
        <tr><th>Description</th><th class="num">Qty</th><th class="num">Unit price</th><th class="num">Total</th></tr>
      </thead>
      <tbody>
        {% for item in items %}
        <tr>
          <td>{{ item.description }}</td>
          <td class="num">{{ item.quantity }}</td>
          <td class="num">{{ "{:,.2f}".format(item.unitPrice or 0) }}</td>
          <td class="num">{{ "{:,.2f}".format(item.totalPrice or 0) }}</td>
        </tr>
        {% endfor %}
      </tbody>
    </table>
    <table class="totals">
      <tr><td class="num">Subtotal: PHP {{ "{:,.2f}".format(ce.subtotal or 0) }}</td></tr>
      <tr><td class="num">VAT ({{ "{:.0f}".format((ce.taxRate or 0) * 100) }}%): PHP {{ "{:,.2f}".format(ce.taxAmount or 0) }}</td></tr>
      <tr><td class="num grand">Total: PHP {{ "{:,.2f}".format(ce.totalAmount or 0) }}</td></tr>
    </table>
  </div>
  {% if ce.notes %}
  <div class="section"><h2>Notes</h2><div>{{ ce.notes }}</div></div>
  {% endif %}
</body>
</html>
"""
)

_REPORT_TEMPLATE = Template(
    """
<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8" />
  <style>{{ style }}</style>
</head>
<body>
  <div class="header">
    <div>
      <div class="title">{{ report_label }}</div>
      <div class="subtitle">{{ r.siteName or product.name or "" }}{% if r.siteCode %} ({{ r.siteCode }}){% endif %}</div>
    </div>
    <div class="subtitle">
      {{ date_label }}<br />
      {{ (r.status or "draft")|upper }}
    </div>
  </div>
  <div class="section">
    <h2>Project</h2>
    <table>
      <tr><th>Client</th><td>{{ r.client or "N/A" }}</td></tr>
      <tr><th>Job order</th><td>{{ r.joNumber or "N/A" }}{% if r.joType %} ({{ r.joType }}){% endif %}</td></tr>
      <tr><th>Location</th><td>{{ location or "N/A" }}</td></tr>
      <tr><th>Booking</th><td>{{ booking.start or "N/A" }} to {{ booking.end or "N/A" }}</td></tr>
      <tr><th>Sales</th><td>{{ r.sales or "N/A" }}</td></tr>
      {% if r.completionPercentage is number %}
      <tr><th>Completion</th><td>{{ r.completionPercentage }}%</td></tr>
      {% endif %}
    </table>
  </div>
  {% if r.installationStatus or r.delayReason %}
  <div class="section">
    <h2>Installation</h2>
    <div>Status: {{ r.installationStatus or "N/A" }}</div>
    {% if r.installationTimeline %}<div>Timeline: {{ r.installationTimeline }}</div>{% endif %}
    {% if r.delayReason %}<div>Delay: {{ r.delayReason }} ({{ r.delayDays or 0 }} days)</div>{% endif %}
  </div>
  {% endif %}
  {% if r.descriptionOfWork %}
  <div class="section"><h2>Description of work</h2><div>{{ r.descriptionOfWork }}</div></div>
  {% endif %}
  {% if r.attachments %}
  <div class="section">
    <h2>Attachments</h2>
    <table>
      {% for attachment in r.attachments %}
      <tr><td>{{ attachment.fileName }}</td><td>{{ attachment.note }}</td></tr>
      {% endfor %}
    </table>
  </div>
  {% endif %}
  <div class="section">
    <h2>Prepared by</h2>
    <div>{{ prepared_by or "N/A" }}</div>
  </div>
</body>
</html>
"""
)

_SERVICE_ASSIGNMENT_TEMPLATE = Template(
    """
<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8" />
  <style>{{ style }}</style>
</head>
<body>
  <div class="header">
    <div>
      <div class="title">SERVICE ASSIGNMENT</div>
      <div class="subtitle">{{ sa.saNumber }}</div>
    </div>
    <div class="subtitle">
      {{ created_label }}<br />
      {{ (sa.status or "pending")|upper }}
    </div>
  </div>
  <div class="section">
    <h2>Site</h2>
    <div>{{ sa.projectSiteName or "N/A" }}</div>
    <div>{{ sa.projectSiteLocation or "" }}</div>
  </div>
  <div class="section">
    <h2>Service</h2>
    <table>
      <tr><th>Type</th><td>{{ sa.serviceType or "N/A" }}</td></tr>
      <tr><th>Assigned to</th><td>{{ sa.assignedToName or sa.assignedTo or "N/A" }}</td></tr>
      <tr><th>Coverage</th><td>{{ start_label }} to {{ end_label }}</td></tr>
      <tr><th>Job order</th><td>{{ sa.jobOrderId or "N/A" }}</td></tr>
    </table>
  </div>
  {% if sa.jobDescription or sa.message %}
  <div class="section">
    <h2>Remarks</h2>
    {% if sa.jobDescription %}<div>{{ sa.jobDescription }}</div>{% endif %}
    {% if sa.message %}<div>{{ sa.message }}</div>{% endif %}
  </div>
  {% endif %}
</body>
</html>
"""
)

_REPLENISH_TEMPLATE = Template(
    """
<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8" />
  <style>{{ style }}</style>
</head>
<body>
  <div class="header">
    <div>
      <div class="title">REPLENISHMENT REQUEST</div>
      <div class="subtitle">Request #{{ number }}</div>
    </div>
    <div class="subtitle">{{ status }}</div>
  </div>
  <div class="section">
    <h2>Summary</h2>
    <table>
      <tr><th>Requestor</th><td>{{ req["Requestor"] or "N/A" }}</td><th>Type</th><td>Replenish</td></tr>
      <tr><th>Prepared by</th><td>{{ prepared_by }}</td><th>Date requested</th><td>{{ requested_label }}</td></tr>
      <tr><th>Created</th><td>{{ created_label }}</td><th>Voucher No.</th><td>{{ req["Voucher No."] or "-" }}</td></tr>
    </table>
  </div>
  <div class="section">
    <h2>Amounts</h2>
    <table>
      <tr><th>Amount</th><td class="num">{{ amount }}</td></tr>
      <tr><th>Total amount</th><td class="num grand">{{ total_amount }}</td></tr>
    </table>
  </div>
  <div class="section">
    <h2>Approval</h2>
    <div>Management approval: {{ req["Management Approval"] or "Pending" }}</div>
    <div>Approved by: {{ req["Approved By"] or "-" }}</div>
  </div>
  <div class="section">
    <h2>Particulars</h2>
    <div>{{ req["Particulars"] or req["Requested Item"] or "-" }}</div>
  </div>
  <div class="subtitle">This report includes details stored in the request only. No attachments are included.</div>
</body>
</html>
"""
)


def _date_label(value, default: str = "") -> str:
    if isinstance(value, str) and value:
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return value
    if hasattr(value, "strftime"):
        return value.strftime("%B %d, %Y")
    return default


def _created_label(document: dict) -> str:
    return _date_label(document.get("created") or document.get("createdAt"))


def _money(amount, currency: str = "PHP") -> str:
    if isinstance(amount, str):
        amount = re.sub(r"[^\d.-]", "", amount)
    try:
        value = float(amount or 0)
    except ValueError:
        value = 0.0
    return f"{currency}{value:,.2f}"


def _write_pdf(html: str) -> bytes:
    from weasyprint import HTML

    return HTML(string=html).write_pdf()


def render_quotation_html(quotation: dict) -> str:
    payload = {**quotation, "created_label": _created_label(quotation)}
    return _QUOTATION_TEMPLATE.render(
        style=_STYLE,
        q=payload,
        client=quotation.get("client") or {},
        items=quotation.get("items") or [],
    )


def render_cost_estimate_html(cost_estimate: dict) -> str:
    payload = {**cost_estimate, "created_label": _created_label(cost_estimate)}
    return _COST_ESTIMATE_TEMPLATE.render(
        style=_STYLE,
        ce=payload,
        client=cost_estimate.get("client") or {},
        items=cost_estimate.get("lineItems") or [],
    )


def render_quotation_pdf(quotation: dict) -> bytes:
    return _write_pdf(render_quotation_html(quotation))


def render_cost_estimate_pdf(cost_estimate: dict) -> bytes:
    return _write_pdf(render_cost_estimate_html(cost_estimate))


REPORT_LABELS = {
    "completion-report": "COMPLETION REPORT",
    "monitoring-report": "MONITORING REPORT",
    "installation-report": "INSTALLATION REPORT",
    "roc": "REPORT OF COMPLETION",
}


def render_report_html(report: dict, product: dict | None = None, author: dict | None = None) -> str:
    product = product or {}
    author = author or {}
    author_name = f"{author.get('first_name', '')} {author.get('last_name', '')}".strip()
    report_type = report.get("reportType") or ""
    return _REPORT_TEMPLATE.render(
        style=_STYLE,
        r=report,
        product=product,
        report_label=REPORT_LABELS.get(report_type, report_type.replace("-", " ").upper() or "REPORT"),
        date_label=_date_label(report.get("date"), _created_label(report)),
        booking=report.get("bookingDates") or {},
        location=report.get("location") or (product.get("specs_rental") or {}).get("location"),
        prepared_by=report.get("createdByName") or author_name or author.get("email"),
    )


def render_service_assignment_html(assignment: dict) -> str:
    return _SERVICE_ASSIGNMENT_TEMPLATE.render(
        style=_STYLE,
        sa=assignment,
        created_label=_created_label(assignment),
        start_label=_date_label(assignment.get("coveredDateStart"), "N/A"),
        end_label=_date_label(assignment.get("coveredDateEnd"), "N/A"),
    )


def render_replenish_html(request: dict, prepared_by: str = "") -> str:
    currency = request.get("Currency") or "PHP"
    return _REPLENISH_TEMPLATE.render(
        style=_STYLE,
        req=request,
        number=request.get("Request No.") or request.get("id"),
        status=(request.get("Actions") or "Pending").upper(),
        prepared_by=prepared_by or request.get("Requestor") or "Prepared by user",
        created_label=_created_label(request) or "N/A",
        requested_label=_date_label(request.get("Date Requested"), "N/A"),
        amount=_money(request.get("Amount"), currency),
        total_amount=_money(request.get("Total Amount"), currency),
    )


def render_report_pdf(report: dict, product: dict | None = None, author: dict | None = None) -> bytes:
    return _write_pdf(render_report_html(report, product, author))


def render_service_assignment_pdf(assignment: dict) -> bytes:
    return _write_pdf(render_service_assignment_html(assignment))


def render_replenish_pdf(request: dict, prepared_by: str = "") -> bytes:
    return _write_pdf(render_replenish_html(request, prepared_by))
