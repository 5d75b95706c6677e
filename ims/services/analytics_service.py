from datetime import datetime
from ims.constants import Role, ApplicationStatus, APPLICANT_ROLES
from ims.services.access_filter import scoped_query
from ims.models import Application


def approval_rate(status_counts):
    """Approved share of decided applications, in percent with one decimal."""
    approved = status_counts.get(ApplicationStatus.APPROVED.value, 0)
    processed = approved + status_counts.get(ApplicationStatus.REJECTED.value, 0)
    if processed == 0:
        return 0
    return round(approved / processed * 100, 1)


def last_months(now, count=6):
    """Labels like 'Oct 2026' for the last ``count`` months, oldest first."""
    months = []
    year, month = now.year, now.month
    for _ in range(count):
        months.append((year, month))
        month -= 1
        if month == 0:
            month, year = 12, year - 1
    return [datetime(y, m, 1).strftime('%b %Y') for y, m in reversed(months)]


def get_application_stats(user, now=None):
    """Dashboard figures over the applications ``user`` is allowed to see."""
    now = now or datetime.utcnow()
    applications = scoped_query(user).order_by(Application.created_at.desc(), Application.id.desc()).all()

    status_counts = {s.value: 0 for s in ApplicationStatus}
    role_counts = {r.value: 0 for r in sorted(APPLICANT_ROLES, key=lambda r: r.value)}
    department_counts = {}
    institution_counts = {}

    for a in applications:
        status_counts[ApplicationStatus(a.status).value] += 1
        role_counts[Role(a.applicant_role).value] += 1

        dept = a.preferred_department or 'Not Specified'
        department_counts[dept] = department_counts.get(dept, 0) + 1

        institution = (a.user.institution if a.user else None) or 'Not Specified'
        institution_counts[institution] = institution_counts.get(institution, 0) + 1

    months = last_months(now)
    monthly = dict.fromkeys(months, 0)
    for a in applications:
        if a.created_at:
            key = a.created_at.strftime('%b %Y')
            if key in monthly:
                monthly[key] += 1

    recent = [{
        'id': a.id,
        'name': a.user.full_name if a.user else '',
        'role': Role(a.applicant_role).value,
        'department': a.preferred_department,
        'subdepartment': a.preferred_subdepartment,
        'status': ApplicationStatus(a.status).value,
        'createdAt': a.created_at.isoformat() if a.created_at else None,
    } for a in applications[:5]]

    return {
        'total': len(applications),
        'statusCounts': status_counts,
        'roleCounts': role_counts,
        'departmentCounts': department_counts,
        'institutionCounts': institution_counts,
        'timelineData': [{'month': m, 'count': monthly[m]} for m in months],
        'approvalRate': approval_rate(status_counts),
        'recentApplications': recent,
    }
