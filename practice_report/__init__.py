"""
practice-report — Source package.

Modules:
    config       — YAML configuration with built-in defaults
    csv_parser   — Lenient RFC-4180-style CSV tokenizer
    drilldown    — Drill-down table builder, row de-duplication, column roles
    bundle       — Report data model (KPIs, sections, categories, summary rows)
    narrative    — Template-based candidate blurbs per report section
    render       — Jinja2 HTML renderers (report + drill-down)
    pdf_service  — Headless-browser HTML → PDF conversion (Playwright)
    pdf_builder  — ReportLab summary PDF (no browser required)
    reviewer     — Operator review session (upload, choose, preview, export)
    server       — HTTP endpoint: /pdf, render routes, review UI
"""
