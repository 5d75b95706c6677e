import csv
import io
from ims.constants import Role, ApplicationStatus

HEADERS = [
    "S.No", "Full Name", "Email", "Phone Number", "Role", "Institution", "Course",
    "Year of Study", "Department", "Subdepartment", "Status", "Start Date", "End Date",
    "HR Comments", "HOD Comments", "Submitted On",
]


FORMULA_PREFIXES = ('=', '+', '-', '@')


def _fmt(value):
    if value is None:
        return ''
    if hasattr(value, 'strftime'):
        return value.strftime('%Y-%m-%d')
    text = str(value).strip()
    # Spreadsheets would evaluate these cells as formulas
    if text.startswith(FORMULA_PREFIXES):
        return "'" + text
    return text


def application_rows(applications):
    for idx, app in enumerate(applications, 1):
        user = app.user
        yield [
            idx,
            _fmt(user.full_name if user else ''),
            _fmt(user.email if user else ''),
            _fmt(user.phone_number if user else ''),
            Role(app.applicant_role).value,
            _fmt(user.institution if user else ''),
            _fmt(user.course if user else ''),
            _fmt(user.year_of_study if user else ''),
            _fmt(app.preferred_department),
            _fmt(app.preferred_subdepartment),
            ApplicationStatus(app.status).value,
            _fmt(app.start_date),
            _fmt(app.end_date),
            _fmt(app.hr_comments),
            _fmt(app.hod_comments),
            _fmt(app.created_at),
        ]


def generate_applications_csv(applications):
    """Yields the CSV export chunk by chunk, header first."""
    data = io.StringIO()
    writer = csv.writer(data)

    writer.writerow(HEADERS)
    yield data.getvalue()
    data.seek(0); data.truncate(0)

    for row in application_rows(applications):
        writer.writerow(row)
        yield data.getvalue()
        data.seek(0); data.truncate(0)
