"""
Template answers built from the knowledge base with plain keyword matching.

Used only when a caller opts out of external providers. Deterministic and
network-free; it cannot fail.
"""

from app.core.knowledge import (
    PAIN_POINTS,
    PainPoint,
    find_id_references,
    get_by_category,
    get_categories,
    get_critical_items,
    get_quick_wins,
)

_QUICK_WIN_WORDS = ("quick win", "easy win", "low hanging")
_PRIORITY_WORDS = ("priority", "critical", "p0", "urgent")
_ROI_WORDS = ("roi", "return", "value", "cost")
_PLAN_WORDS = ("90", "plan", "roadmap", "timeline")
_OVERVIEW_WORDS = ("overview", "summary", "all", "list")


def _mentions_any(text: str, words: tuple[str, ...]) -> bool:
    return any(word in text for word in words)


def _mentioned_pain_points(text: str) -> list[PainPoint]:
    # direct mentions first, then whole categories
    cited = find_id_references(text)
    mentioned = [p for p in PAIN_POINTS if p.id in cited or p.name.lower() in text]
    for category in get_categories():
        if category.lower() in text:
            mentioned.extend(p for p in get_by_category(category) if p not in mentioned)
    return mentioned


def _quick_wins() -> str:
    blocks = "\n\n".join(
        f"### Pain Point #{p.id}: {p.name}\n"
        f"- **Impact:** {p.impact}/10 | **Effort:** {p.effort}/10\n"
        f"- **Owner:** {p.owner}\n"
        f"- **Solution:** {p.solution}\n"
        f"- **First Action:** {p.action_items[0]}"
        for p in get_quick_wins()
    )
    return (
        "## 🎯 Quick Wins for Guardian Roofing\n\n"
        "Based on high ROI potential and lower implementation effort, here are your best quick wins:\n\n"
        f"{blocks}\n\n"
        "**Recommendation:** Start with Pain Point #4 (Production Handoffs) - it has the highest "
        "impact-to-effort ratio and can show results within 30 days."
    )


def _critical() -> str:
    blocks = "\n\n".join(
        f"### Pain Point #{p.id}: {p.name}\n"
        f"- **Impact:** {p.impact}/10\n"
        f"- **Business Cost:** {p.why_costly}\n"
        f"- **Owner:** {p.owner}\n"
        f"- **Solution:** {p.solution}"
        for p in get_critical_items()
    )
    return (
        "## 🚨 Critical Priority Items (P0)\n\n"
        "These require immediate attention due to their high business impact:\n\n"
        f"{blocks}\n\n"
        "**Strategic Note:** While all P0 items are critical, Pain Point #9 (Leadership Bottleneck) "
        "is a force multiplier - solving it accelerates progress on all other initiatives."
    )


ROI_SUMMARY = """## 💰 ROI Analysis Summary

### Highest Revenue Impact
1. **#1 Lead Intake** - Direct revenue recovery through faster lead response
2. **#2 Sales Rep Performance** - Revenue multiplier through rep enablement
3. **#9 Leadership Bottleneck** - Strategic capacity unlock

### Highest Cost Reduction
1. **#4 Production Handoffs** - 25% rework reduction potential
2. **#5 Scheduling & Capacity** - 20% margin improvement through utilization
3. **#6 Vendor Quality** - Callback cost elimination

### Fastest Payback (< 90 days)
1. **#7 Homeowner Communication** - Immediate staff time savings
2. **#4 Production Handoffs** - Quick checklist implementation
3. **#1 Lead Intake** - Lead routing automation

Would you like me to create a detailed ROI projection for any specific pain point?"""

ROADMAP = """## 📅 Recommended 90-Day Roadmap

### Month 1: Foundation (Days 1-30)
- **Week 1-2:** Launch Pain Point #4 (Production Handoffs)
  - Create mandatory handoff checklist
  - Implement digital handoff form
- **Week 3-4:** Begin Pain Point #7 (Homeowner Communication)
  - Build automated status notifications
  - Set up FAQ automation

### Month 2: Acceleration (Days 31-60)
- **Week 5-6:** Launch Pain Point #1 (Lead Intake)
  - Implement unified lead capture
  - Set up automated qualification scoring
- **Week 7-8:** Begin Pain Point #9 (Leadership Bottleneck)
  - Document decision authority matrix
  - Create functional ownership chart

### Month 3: Scale (Days 61-90)
- **Week 9-10:** Expand automation coverage
  - AI-assisted lead scoring
  - Customer portal launch
- **Week 11-12:** Measure and optimize
  - Review metrics against targets
  - Plan Phase 2 initiatives

**Success Metrics to Track:**
- Lead response time: >24h → <15min
- Rework rate: 25% → <10%
- Customer satisfaction: 3.8 → 4.2

Would you like me to detail the action items for any specific phase?"""


def _pain_point_detail(p: PainPoint) -> str:
    actions = "\n".join(f"{i}. {item}" for i, item in enumerate(p.action_items, start=1))
    metrics = "\n".join(f"- **{m.label}:** {m.current} → {m.target}" for m in p.metrics)
    return (
        f"## Pain Point #{p.id}: {p.name}\n\n"
        "### Overview\n"
        f"- **Priority:** {p.priority} | **Category:** {p.category}\n"
        f"- **Impact:** {p.impact}/10 | **Effort:** {p.effort}/10\n"
        f"- **Owner:** {p.owner}\n"
        f"- **Quick Win Potential:** {p.quick_win}\n\n"
        f"### The Problem\n{p.pain}\n\n"
        f"### Business Impact\n{p.why_costly}\n\n"
        f"### Recommended Solution\n{p.solution}\n\n"
        f"### Action Items\n{actions}\n\n"
        f"### Success Metrics\n{metrics}\n\n"
        "Would you like me to create a detailed implementation plan or identify dependencies "
        "with other pain points?"
    )


OVERVIEW = """## 📊 Guardian Roofing 2026 Pain Points Overview

### By Priority
**P0 - Critical (4 items):** #1 Lead Intake, #5 Scheduling, #8 Data Fragmentation, #9 Leadership
**P1 - High (4 items):** #2 Sales Performance, #4 Handoffs, #6 Crew Quality, #10 Training
**P2 - Medium (2 items):** #3 Insurance Claims, #7 Homeowner Communication

### By Category
- **Sales (2):** Lead Intake, Sales Performance
- **Operations (4):** Handoffs, Scheduling, Crew Quality, Training
- **Claims (1):** Insurance Process
- **Customer Experience (1):** Homeowner Communication
- **Technology (1):** Data Fragmentation
- **Leadership (1):** Leadership Bottleneck

### Quick Stats
- 🎯 Quick Wins: 4 items with High ROI potential
- ⚡ Average Impact: 7.9/10
- 📊 Solution Types: Automation (40%), Standardization (35%), Centralization (25%)

What would you like to explore? I can help with:
- Detailed analysis of any pain point
- Quick wins and prioritization
- 90-day implementation roadmaps
- ROI projections
- Dependency mapping"""

HELP_MENU = """## 🤖 How Can I Help?

I'm GuardianAI, your strategic advisor for the 2026 Pain Points initiative. I can help you with:

### Quick Actions
- **"Show me quick wins"** - Low-effort, high-impact opportunities
- **"What's critical?"** - P0 priority items needing immediate attention
- **"Create a 90-day plan"** - Phased implementation roadmap

### Deep Dives
- **"Tell me about [pain point name]"** - Detailed analysis
- **"What's the ROI?"** - Cost/benefit analysis
- **"Show dependencies"** - How pain points connect

### Specific Questions
- Ask about any of the 10 pain points by name or number
- Ask about categories (Sales, Operations, etc.)
- Ask about owners or solution types

What would you like to explore?"""


def generate_local_response(message: str) -> str:
    text = message.lower()

    if _mentions_any(text, _QUICK_WIN_WORDS):
        return _quick_wins()
    if _mentions_any(text, _PRIORITY_WORDS):
        return _critical()
    if _mentions_any(text, _ROI_WORDS):
        return ROI_SUMMARY
    if _mentions_any(text, _PLAN_WORDS):
        return ROADMAP

    mentioned = _mentioned_pain_points(text)
    if mentioned:
        return _pain_point_detail(mentioned[0])

    if _mentions_any(text, _OVERVIEW_WORDS):
        return OVERVIEW
    return HELP_MENU
