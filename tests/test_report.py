from rate_compare.plans import compare_plans
from rate_compare.report import render_report


def _sample_report() -> str:
    readings = [
        ("2024-06-03 15:00", 2.0),
        ("2024-06-03 23:00", 1.0),
        ("2024-12-10 02:00", 5.0),
    ]
    return render_report(compare_plans(readings))


def test_report_sections_in_plan_order() -> None:
    report = _sample_report()
    headings = [
        "1. Time-of-Use – Residential Energy Only (TOU-REO):",
        "2. Time-of-Use – Overnight Advantage (TOU-OA):",
        "3. Time-of-Use – Residential Demand (TOU-RD):",
        "4. Residential Service (R-30):",
        "Overall Final Totals:",
    ]
    positions = [report.index(heading) for heading in headings]
    assert positions == sorted(positions)


def test_report_line_items() -> None:
    report = _sample_report()
    assert "   Fixed Charge: 2 days * $0.4603 = $0.92" in report
    assert "   On-Peak Energy: 2.00 kWh @ $0.297868/kWh = $0.60" in report
    assert "   Super Off-Peak Energy: 6.00 kWh @ $0.021859/kWh = $0.13" in report
    assert "     2024-06: Max Usage 2.00 kWh * $12.21/kW = $24.42" in report
    assert "     2024-12: Max Usage 5.00 kWh * $12.21/kW = $61.05" in report
    assert "   Total Demand Charge: $85.47" in report


def test_report_tiered_months() -> None:
    report = _sample_report()
    assert "     2024-06 (Summer):" in report
    assert "       Tier 1 (first 650 kWh): 3.00 kWh @ $0.086121/kWh = $0.26" in report
    assert "       Tier 2 (next 350 kWh): 0.00 kWh @ $0.143047/kWh = $0.00" in report
    assert "       Tier 3 (above 1000 kWh): 0.00 kWh" in report
    assert "     2024-12 (Winter):" in report
    assert "       Energy Usage: 5.00 kWh @ $0.080602/kWh = $0.40" in report
    assert "       Monthly Total: $0.86" in report


def test_report_totals_block() -> None:
    comparison = compare_plans([("2024-07-15 15:00", 10.0)])
    report = render_report(comparison)
    tail = report[report.index("Overall Final Totals:") :]
    assert "   TOU-REO: $3.44" in tail
    assert "   TOU-RD:  $123.99" in tail
    assert "Lowest cost plan: R-30" in tail


def test_empty_report_has_zero_totals() -> None:
    report = render_report(compare_plans([]))
    assert "   Total TOU-REO Cost: $0.00" in report
    assert "   Total R-30 Cost (all months): $0.00" in report
    assert "   Fixed Charge: 0 days * $0.4603 = $0.00" in report


def test_rider_estimates_follow_totals() -> None:
    comparison = compare_plans([("2024-07-15 15:00", 10.0)])
    report = render_report(comparison, comparison.estimates())
    tail = report[report.index("Lowest cost plan:") :]

    assert "Estimated Totals with Riders and Taxes:" in tail
    assert "   TOU-REO: $3.44 + fuel $0.46 + taxes $0.47 = $4.37" in tail
    assert "Estimated Totals" not in render_report(comparison)
