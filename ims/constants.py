from enum import Enum


class Role(str, Enum):
    """User roles for permissions."""
    INTERN = 'intern'
    ATTACHEE = 'attachee'
    HR = 'hr'
    HOD = 'hod'
    ADMIN = 'admin'
    CHIEF_OF_STAFF = 'chief_of_staff'
    PRINCIPAL_SECRETARY = 'principal_secretary'

    @property
    def is_applicant(self):
        return self in APPLICANT_ROLES

    @property
    def needs_subdepartment(self):
        # COS and PS work at department level only
        return self in (Role.INTERN, Role.ATTACHEE, Role.HR, Role.HOD)


class ApplicationStatus(str, Enum):
    """Review states of an application. APPROVED and REJECTED are terminal."""
    PENDING = 'pending'
    HR_REVIEW = 'hr_review'
    HOD_REVIEW = 'hod_review'
    APPROVED = 'approved'
    REJECTED = 'rejected'

    @property
    def is_terminal(self):
        return self in TERMINAL_STATUSES


class ReviewAction(str, Enum):
    APPROVE = 'approve'
    REJECT = 'reject'


APPLICANT_ROLES = frozenset({Role.INTERN, Role.ATTACHEE})
STAFF_ROLES = (Role.HR, Role.HOD, Role.CHIEF_OF_STAFF, Role.PRINCIPAL_SECRETARY)
VIEWER_ROLES = (Role.HR, Role.HOD, Role.CHIEF_OF_STAFF, Role.PRINCIPAL_SECRETARY)

# pending and hr_review are the same queue: waiting on HR
AWAITING_HR = frozenset({ApplicationStatus.PENDING, ApplicationStatus.HR_REVIEW})
IN_FLIGHT_STATUSES = AWAITING_HR | {ApplicationStatus.HOD_REVIEW}
TERMINAL_STATUSES = frozenset({ApplicationStatus.APPROVED, ApplicationStatus.REJECTED})

NO_SUBDEPARTMENT = 'NONE'

# Upload field name -> human label, per applicant role
INTERN_DOCUMENTS = {
    'appointmentLetter': 'Appointment Letter',
    'degreeCertificate': 'Degree Certificate',
    'transcripts': 'Transcripts',
    'nationalIdOrPassport': 'National ID or Passport',
    'kraPinCertificate': 'KRA PIN Certificate',
    'goodConductCertificate': 'Certificate of Good Conduct',
    'passportPhotos': 'Passport Photos',
    'shifCard': 'SHIF Card',
    'insuranceCover': 'Insurance Cover',
    'nssfCard': 'NSSF Card',
    'bioDataForm': 'Bio Data Form',
}

ATTACHEE_DOCUMENTS = {
    'applicationLetter': 'Application Letter',
    'cv': 'Curriculum Vitae',
    'attacheeTranscripts': 'Transcripts',
    'recommendationLetter': 'Recommendation Letter',
    'attacheeNationalId': 'National ID',
    'attacheeInsurance': 'Insurance Cover',
    'goodConductCertOrReceipt': 'Good Conduct Certificate or Receipt',
}

REQUIRED_DOCUMENTS = {
    Role.INTERN: tuple(INTERN_DOCUMENTS),
    Role.ATTACHEE: tuple(ATTACHEE_DOCUMENTS),
}

NATIONAL_ID_DOCUMENT = {
    Role.INTERN: 'nationalIdOrPassport',
    Role.ATTACHEE: 'attacheeNationalId',
}

ALL_DOCUMENT_FIELDS = tuple(INTERN_DOCUMENTS) + tuple(ATTACHEE_DOCUMENTS)
