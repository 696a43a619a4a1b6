"""
Static knowledge base: Guardian Roofing's ten strategic pain points for 2026.

Read-only. Feeds the system prompt, the local responder and the
referenced-pain-point metadata stored with assistant replies.
"""

import re
from typing import Literal

from pydantic import BaseModel, ConfigDict
from rapidfuzz import fuzz

NAME_MATCH_THRESHOLD = 90


class PainPointMetric(BaseModel):
    model_config = ConfigDict(frozen=True)

    label: str
    current: str
    target: str


class PainPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    impact: int
    effort: int
    cost_type: str
    primary_cost: str
    solution_type: str
    owner: str
    quick_win: Literal["High", "Medium", "Low"]
    priority: Literal["P0", "P1", "P2"]
    category: str
    pain: str
    why_costly: str
    solution: str
    action_items: tuple[str, ...]
    metrics: tuple[PainPointMetric, ...]


def _metric(label: str, current: str, target: str) -> PainPointMetric:
    return PainPointMetric(label=label, current=current, target=target)


PAIN_POINTS: tuple[PainPoint, ...] = (
    PainPoint(
        id=1,
        name="Lead Intake → Inspection → Sale Handoffs",
        impact=9,
        effort=6,
        cost_type="Revenue",
        primary_cost="Lost Opportunities",
        solution_type="Automation",
        owner="Sales Ops Manager",
        quick_win="High",
        priority="P0",
        category="Sales",
        pain=(
            "Leads come from multiple sources (canvassing, referrals, storms, online). "
            "Inconsistent qualification and follow-up. Sales reps spend time chasing "
            "instead of selling."
        ),
        why_costly="Lost or delayed opportunities, Uneven close rates, Poor customer experience early on",
        solution=(
            "Centralized lead intake + qualification workflow, Clear ownership rules + "
            "automation triggers, AI-assisted lead scoring and routing"
        ),
        action_items=(
            "Implement unified lead capture system",
            "Create automated qualification scoring",
            "Set up smart routing rules by territory/rep",
            "Build AI-powered lead scoring model",
        ),
        metrics=(
            _metric("Lead Response Time", ">24 hours", "<15 minutes"),
            _metric("Lead Conversion Rate", "25%", "35%"),
            _metric("Handoff Time", "3-5 days", "Same day"),
        ),
    ),
    PainPoint(
        id=2,
        name="Sales Rep Performance",
        impact=8,
        effort=7,
        cost_type="Revenue",
        primary_cost="Revenue Volatility",
        solution_type="Standardization",
        owner="Sales Director",
        quick_win="Medium",
        priority="P1",
        category="Sales",
        pain=(
            "Top reps outperform dramatically, New or average reps struggle to ramp, "
            "Knowledge lives in people, not systems"
        ),
        why_costly="Revenue volatility, High training and churn costs, You can't confidently scale",
        solution=(
            "Standardized sales playbooks (AI-searchable), Real-time coaching prompts and "
            "scripts, KPI-driven accountability dashboards"
        ),
        action_items=(
            "Document top rep best practices",
            "Create role-based playbooks",
            "Implement real-time coaching tools",
            "Build performance dashboards",
        ),
        metrics=(
            _metric("Rep Ramp-up Time", "90 days", "45 days"),
            _metric("Top vs Bottom Gap", "4x", "1.5x"),
            _metric("Training Adoption", "30%", "80%"),
        ),
    ),
    PainPoint(
        id=3,
        name="Insurance Claim Process",
        impact=7,
        effort=8,
        cost_type="OpEx",
        primary_cost="Extended Cycle Times",
        solution_type="Process+Automation",
        owner="Claims Manager",
        quick_win="Medium",
        priority="P2",
        category="Claims",
        pain="Adjuster variability, Documentation inconsistencies, Homeowner confusion and anxiety",
        why_costly="Extended cycle times, Underpaid claims, Sales and production friction",
        solution=(
            "Claim documentation SOPs + templates, Pre-adjuster prep workflows, Homeowner "
            "education automation (texts/videos)"
        ),
        action_items=(
            "Standardize claim documentation templates",
            "Create pre-adjuster checklist",
            "Build homeowner communication workflows",
            "Implement claim tracking system",
        ),
        metrics=(
            _metric("Claim Cycle Time", "45-60 days", "30 days"),
            _metric("First Call Resolution", "60%", "85%"),
            _metric("Claim Approval Rate", "70%", "85%"),
        ),
    ),
    PainPoint(
        id=4,
        name="Production Handoffs",
        impact=8,
        effort=5,
        cost_type="OpEx",
        primary_cost="Rework & Delays",
        solution_type="Standardization",
        owner="Operations Manager",
        quick_win="High",
        priority="P1",
        category="Operations",
        pain=(
            "Missing measurements, scopes, or expectations, Production teams inherit "
            "problems they didn't create"
        ),
        why_costly="Rework and delays, Internal conflict, Customer dissatisfaction",
        solution=(
            "Sales-to-Production Readiness Checklist, Digital handoff requirements "
            "(no exceptions), Automated rejection/feedback loop"
        ),
        action_items=(
            "Create mandatory handoff checklist",
            "Implement digital handoff form",
            "Set up automated quality checks",
            "Build feedback loop system",
        ),
        metrics=(
            _metric("Rework Rate", "25%", "<5%"),
            _metric("Handoff Time", "2-3 days", "<4 hours"),
            _metric("Complete Handoffs", "65%", "95%"),
        ),
    ),
    PainPoint(
        id=5,
        name="Scheduling & Capacity",
        impact=9,
        effort=9,
        cost_type="OpEx",
        primary_cost="Idle Crews/Burnout",
        solution_type="Predictive Analytics",
        owner="Production Director",
        quick_win="Low",
        priority="P0",
        category="Operations",
        pain=(
            "Crews scheduled last-minute, Weather + material delays compound chaos, "
            "No clear view of future workload"
        ),
        why_costly="Idle crews or burnout, Missed deadlines, Margin erosion",
        solution=(
            "Forecast-based scheduling, Capacity planning dashboards, Automated "
            "rescheduling logic tied to weather/materials"
        ),
        action_items=(
            "Build capacity planning dashboard",
            "Integrate weather forecasting",
            "Implement predictive scheduling",
            "Create material tracking system",
        ),
        metrics=(
            _metric("Crew Utilization", "65%", "85%"),
            _metric("Schedule Lead Time", "2-3 days", "7-14 days"),
            _metric("Weather Reschedule Rate", "15%", "<5%"),
        ),
    ),
    PainPoint(
        id=6,
        name="Vendor & Crew Quality",
        impact=7,
        effort=6,
        cost_type="Quality",
        primary_cost="Callbacks/Warranty",
        solution_type="Performance Mgmt",
        owner="Vendor Manager",
        quick_win="Medium",
        priority="P1",
        category="Operations",
        pain=(
            "Quality varies by crew, Accountability is informal, Great crews aren't "
            "differentiated from average ones"
        ),
        why_costly="Callbacks and warranty issues, Brand risk, Lost repeat/referral business",
        solution=(
            "Crew scorecards (quality, speed, callbacks), Preferred-vendor tiers, "
            "Performance-based assignment"
        ),
        action_items=(
            "Implement crew scorecard system",
            "Create vendor tier structure",
            "Build performance tracking",
            "Link performance to assignment",
        ),
        metrics=(
            _metric("Callback Rate", "12%", "<3%"),
            _metric("Quality Score", "3.5/5", "4.5/5"),
            _metric("Top Crew Retention", "60%", "90%"),
        ),
    ),
    PainPoint(
        id=7,
        name="Homeowner Communication",
        impact=6,
        effort=4,
        cost_type="CX",
        primary_cost="High Inbound Volume",
        solution_type="Automation",
        owner="CX Manager",
        quick_win="High",
        priority="P2",
        category="Customer Experience",
        pain=(
            'Repetitive status update calls/texts, Customers feel "left in the dark", '
            "Staff spend time answering the same questions"
        ),
        why_costly="Higher inbound volume, Lower satisfaction, Stress on team",
        solution=(
            "Automated status updates by project phase, Customer portal or SMS timeline, "
            "FAQ + expectation-setting automation"
        ),
        action_items=(
            "Build automated status notifications",
            "Create customer portal",
            "Implement FAQ automation",
            "Set expectation-setting workflows",
        ),
        metrics=(
            _metric("Inbound Call Volume", "8/day", "2/day"),
            _metric("Customer Satisfaction", "3.8/5", "4.7/5"),
            _metric("Auto-Response Rate", "20%", "80%"),
        ),
    ),
    PainPoint(
        id=8,
        name="Data Fragmentation",
        impact=9,
        effort=10,
        cost_type="Data",
        primary_cost="Poor Decisions",
        solution_type="Centralization",
        owner="IT/BizOps",
        quick_win="Low",
        priority="P0",
        category="Technology",
        pain=(
            "CRM, spreadsheets, texts, emails, photos, Conflicting information, "
            "Reporting is slow or unreliable"
        ),
        why_costly="Poor decisions, Time wasted reconciling data, Limited AI leverage",
        solution="Unified data architecture, Role-based dashboards, AI-readable operational data layer",
        action_items=(
            "Design unified data model",
            "Build integration layer",
            "Create role-based dashboards",
            "Implement AI data pipeline",
        ),
        metrics=(
            _metric("Data Sources", "10+", "2-3"),
            _metric("Report Generation Time", "2-3 days", "<1 hour"),
            _metric("Data Accuracy", "75%", "95%"),
        ),
    ),
    PainPoint(
        id=9,
        name="Leadership Bottleneck",
        impact=10,
        effort=7,
        cost_type="Strategic",
        primary_cost="Bottlenecked Growth",
        solution_type="Delegation Framework",
        owner="CEO/COO",
        quick_win="High",
        priority="P0",
        category="Leadership",
        pain=(
            "You and key leaders solve daily fires, Strategic projects stall, "
            "Delegation is unclear or incomplete"
        ),
        why_costly="Bottlenecked growth, Burnout, Missed opportunities",
        solution=(
            "Clear ownership by function, Decision frameworks (who decides what), "
            "AI copilots for leaders and managers"
        ),
        action_items=(
            "Document decision authority matrix",
            "Create functional ownership chart",
            "Implement AI copilot tools",
            "Build delegation tracking",
        ),
        metrics=(
            _metric("Leader Firefighting Time", "70%", "<20%"),
            _metric("Strategic Project Velocity", "Low", "High"),
            _metric("Decision Latency", "3-5 days", "<24 hours"),
        ),
    ),
    PainPoint(
        id=10,
        name="Training & SOPs",
        impact=8,
        effort=6,
        cost_type="HR",
        primary_cost="Slower Ramp-up",
        solution_type="Knowledge System",
        owner="HR/Training Lead",
        quick_win="Medium",
        priority="P1",
        category="Operations",
        pain="Ask Bob culture, Inconsistent execution, Hard to onboard quickly",
        why_costly="Slower ramp-up, Quality drift, Dependence on specific people",
        solution=(
            "Living SOP system (searchable, role-based), AI-powered internal knowledge "
            "assistant, Continuous improvement feedback loop"
        ),
        action_items=(
            "Build living SOP platform",
            "Create role-based access",
            "Implement AI knowledge assistant",
            "Set up feedback loops",
        ),
        metrics=(
            _metric("Onboarding Time", "60 days", "30 days"),
            _metric("SOP Search Time", "15+ minutes", "<2 minutes"),
            _metric("Process Adherence", "50%", "85%"),
        ),
    ),
)

_BY_ID = {p.id: p for p in PAIN_POINTS}

# "#4", "pain point 4", "Pain Point #4"
# "#4", "Pain Point 4", "pain point #4"; a bare "#" must touch the number so
# markdown headings ("### 1. Step") don't count.
_ID_REFERENCE = re.compile(r"(?:#|\bpain point\s*#?\s*)(\d{1,2})\b", re.IGNORECASE)


def get_pain_point(pain_point_id: int) -> PainPoint | None:
    return _BY_ID.get(pain_point_id)


def get_categories() -> list[str]:
    return list(dict.fromkeys(p.category for p in PAIN_POINTS))


def get_by_category(category: str) -> list[PainPoint]:
    return [p for p in PAIN_POINTS if p.category == category]


def get_quick_wins() -> list[PainPoint]:
    return [p for p in PAIN_POINTS if p.quick_win == "High" and p.effort <= 6]


def get_critical_items() -> list[PainPoint]:
    return [p for p in PAIN_POINTS if p.priority == "P0"]


def find_id_references(text: str) -> set[int]:
    """Valid pain point ids cited by number."""
    return {int(n) for n in _ID_REFERENCE.findall(text) if get_pain_point(int(n))}


def find_referenced_pain_points(text: str) -> list[int]:
    """
    Ids of the pain points a reply talks about, in knowledge-base order.

    Matches explicit numbers ("#4", "Pain Point 4") and names. Names are
    compared with rapidfuzz so "Lead Intake -> Inspection" still counts when
    the model rewrites the arrow. Derived metadata, not authoritative.
    """
    if not text:
        return []

    referenced = find_id_references(text)
    lowered = text.lower()
    for point in PAIN_POINTS:
        if point.id in referenced:
            continue
        name = point.name.lower()
        if name in lowered:
            referenced.add(point.id)
        # partial_ratio aligns the shorter string, so the reply must be the longer one
        elif len(lowered) >= len(name) and fuzz.partial_ratio(name, lowered) >= NAME_MATCH_THRESHOLD:
            referenced.add(point.id)

    return sorted(referenced)


def format_knowledge_base() -> str:
    """Render every pain point as markdown for the system prompt."""
    sections = []
    for p in PAIN_POINTS:
        actions = "\n".join(f"{i}. {item}" for i, item in enumerate(p.action_items, start=1))
        metrics = "\n".join(f"- {m.label}: {m.current} → {m.target}" for m in p.metrics)
        sections.append(
            f"\n## Pain Point #{p.id}: {p.name}\n"
            f"- **Category:** {p.category}\n"
            f"- **Priority:** {p.priority}\n"
            f"- **Impact:** {p.impact}/10 | **Effort:** {p.effort}/10\n"
            f"- **Owner:** {p.owner}\n"
            f"- **Quick Win Potential:** {p.quick_win}\n\n"
            f"### Problem\n{p.pain}\n\n"
            f"### Business Impact\n{p.why_costly}\n\n"
            f"### Recommended Solution\n{p.solution}\n\n"
            f"### Action Items\n{actions}\n\n"
            f"### Success Metrics\n{metrics}\n"
        )
    return "\n---\n".join(sections)
