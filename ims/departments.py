from flask import current_app, has_app_context

from ims.constants import NO_SUBDEPARTMENT

_UNITS = [
    {'code': 'ADMIN', 'name': 'Administration'},
    {'code': 'CPPMD', 'name': 'CPPMD'},
    {'code': 'HRMD', 'name': 'HRM&D Division'},
    {'code': 'FINANCE', 'name': 'Finance Unit'},
    {'code': 'ACCOUNTS', 'name': 'Accounts Unit'},
    {'code': 'SCM', 'name': 'SCM Unit'},
    {'code': 'PUBLIC_COMM', 'name': 'Public Communications Unit'},
    {'code': 'ICT', 'name': 'ICT Unit'},
]

DEPARTMENTS = {
    'OPCS': {
        'code': 'OPCS',
        'name': 'Office of the Prime Cabinet Secretary',
        'subdepartments': [dict(u) for u in _UNITS],
    },
    'SDPA': {
        'code': 'SDPA',
        'name': 'State Department for Parliamentary Affairs',
        'subdepartments': [dict(u) for u in _UNITS],
    },
}


class DepartmentCatalog:
    """Static lookup of department codes, names and their subdepartments."""

    def __init__(self, departments):
        self._departments = departments

    def list_departments(self):
        return [{'code': code, 'name': d['name']} for code, d in self._departments.items()]

    def list_subdepartments(self, code):
        dept = self._departments.get(code)
        if not dept:
            return []
        return [{'code': s['code'], 'name': s['name']} for s in dept.get('subdepartments') or []]

    def department_name(self, code):
        dept = self._departments.get(code)
        return dept['name'] if dept else code

    def exists(self, code):
        return code in self._departments

    def validate(self, dept_code, subdept_code):
        dept = self._departments.get(dept_code)
        if not dept:
            return False

        subs = dept.get('subdepartments') or []
        if not subs:
            # Departments without formal units accept anything, NONE included
            return True
        return any(s['code'] == subdept_code for s in subs)

    def normalise_subdepartment(self, subdept_code):
        subdept_code = str(subdept_code or '').strip()
        return subdept_code or NO_SUBDEPARTMENT


default_catalog = DepartmentCatalog(DEPARTMENTS)


def get_catalog():
    """Catalog for the running app; DEPARTMENTS in config replaces the built-in one."""
    if has_app_context():
        override = current_app.config.get('DEPARTMENTS')
        if override:
            return DepartmentCatalog(override)
    return default_catalog
