"""Which applications a user may see, and how lists are filtered and sorted."""
import logging
from datetime import datetime, timedelta
from sqlalchemy import or_
from ims.constants import Role, ApplicationStatus, AWAITING_HR
from ims.departments import get_catalog
from ims.errors import Forbidden, ValidationError
from ims.models import Application, User

logger = logging.getLogger(__name__)

SORT_KEYS = {
    'name': lambda a: (a.user.full_name if a.user else '').lower(),
    'department': lambda a: a.preferred_department or '',
    'status': lambda a: ApplicationStatus(a.status).value,
    'startDate': lambda a: a.start_date,
    'createdAt': lambda a: a.created_at,
}


def parse_filters(args):
    """Normalises query-string arguments (camelCase, as sent by the dashboard)."""
    args = args or {}
    sort_by = args.get('sortBy') or 'createdAt'
    if sort_by not in SORT_KEYS:
        raise ValidationError(f"Cannot sort by '{sort_by}'", fields=['sortBy'])
    sort_order = (args.get('sortOrder') or 'desc').lower()
    if sort_order not in ('asc', 'desc'):
        raise ValidationError("sortOrder must be 'asc' or 'desc'", fields=['sortOrder'])

    status = args.get('status') or None
    if status:
        try:
            status = ApplicationStatus(status)
        except ValueError:
            raise ValidationError(f"Unknown status '{status}'", fields=['status'])

    role = args.get('role') or None
    if role:
        try:
            role = Role(role)
        except ValueError:
            role = None
        if role is None or not role.is_applicant:
            raise ValidationError("role must be 'intern' or 'attachee'", fields=['role'])

    return {
        'status': status,
        'department': args.get('department') or None,
        'subdepartment': args.get('subdepartment') or None,
        'role': role,
        'search': (args.get('search') or '').strip().lower() or None,
        'start_date': _parse_day(args.get('startDate'), 'startDate'),
        'end_date': _parse_day(args.get('endDate'), 'endDate'),
        'sort_by': sort_by,
        'sort_order': sort_order,
    }


def _parse_day(value, field):
    if not value:
        return None
    try:
        return datetime.strptime(value[:10], '%Y-%m-%d')
    except ValueError:
        raise ValidationError(f"{field} must be a date in YYYY-MM-DD format", fields=[field])


def scoped_query(user):
    """Base query restricted to the user's visibility scope."""
    role = Role(user.role)
    query = Application.query.join(User, Application.user_id == User.id)

    if role is Role.HR:
        return query
    if role is Role.HOD:
        return query.filter(Application.preferred_department == user.department,
                            Application.preferred_subdepartment == user.subdepartment)
    if role in (Role.CHIEF_OF_STAFF, Role.PRINCIPAL_SECRETARY):
        return query.filter(Application.preferred_department == user.department)
    if role is Role.ADMIN:
        raise Forbidden("Administrators manage accounts and cannot browse applications")
    if role in (Role.INTERN, Role.ATTACHEE):
        raise Forbidden("Use my-applications to view your own applications")
    raise NotImplementedError(f"No application scope defined for role {role!r}")


def _matches(application, term):
    user = application.user
    catalog = get_catalog()
    haystack = [
        user.full_name if user else '',
        user.email if user else '',
        (user.institution or '') if user else '',
        application.preferred_department or '',
        catalog.department_name(application.preferred_department) or '',
    ]
    return any(term in value.lower() for value in haystack)


def visible_applications(user, filters=None):
    """Applications ``user`` may see, after optional filters, stably sorted."""
    filters = filters if filters is not None else parse_filters({})
    role = Role(user.role)
    query = scoped_query(user)

    # HOD scope is forced; COS/PS may narrow inside their department only
    if role is Role.HR and filters.get('department'):
        query = query.filter(Application.preferred_department == filters['department'])
    if role in (Role.HR, Role.CHIEF_OF_STAFF, Role.PRINCIPAL_SECRETARY) and filters.get('subdepartment'):
        query = query.filter(Application.preferred_subdepartment == filters['subdepartment'])

    status = filters.get('status')
    if status in AWAITING_HR:
        query = query.filter(Application.status.in_(list(AWAITING_HR)))
    elif status:
        query = query.filter(Application.status == status)

    if filters.get('role'):
        query = query.filter(Application.applicant_role == filters['role'])
    if filters.get('start_date'):
        query = query.filter(Application.created_at >= filters['start_date'])
    if filters.get('end_date'):
        query = query.filter(Application.created_at < filters['end_date'] + timedelta(days=1))

    # Arrival order: newest first
    applications = query.order_by(Application.created_at.desc(), Application.id.desc()).all()

    term = filters.get('search')
    if term:
        applications = [a for a in applications if _matches(a, term)]

    sort_by = filters.get('sort_by') or 'createdAt'
    reverse = (filters.get('sort_order') or 'desc') == 'desc'
    # sorted() is stable (also with reverse=True), so ties keep arrival order
    return sorted(applications, key=SORT_KEYS[sort_by], reverse=reverse)


def can_view(user, application):
    role = Role(user.role)
    if role in (Role.INTERN, Role.ATTACHEE):
        return application.user_id == user.id
    if role is Role.HR:
        return True
    if role is Role.HOD:
        return (application.preferred_department == user.department and
                application.preferred_subdepartment == user.subdepartment)
    if role in (Role.CHIEF_OF_STAFF, Role.PRINCIPAL_SECRETARY):
        return application.preferred_department == user.department
    if role is Role.ADMIN:
        return False
    raise NotImplementedError(f"No application scope defined for role {role!r}")


def application_for_document(filename):
    """The application a stored upload belongs to, or None."""
    columns = [getattr(Application, column) for column in Application.DOCUMENT_COLUMNS.values()]
    return Application.query.filter(or_(*[column == filename for column in columns])).first()
