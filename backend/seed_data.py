"""Seed database with demo data."""
from compliance_hub.database import SessionLocal, init_db
from compliance_hub.models import Organization, User, AIAgent, Clause, Artefact
import uuid

DEMO_ORG_ID = uuid.UUID('00000000-0000-0000-0000-000000000001')

USERS = [
    {
        'id': uuid.UUID('00000000-0000-0000-0000-000000000100'),
        'email': 'root@compliance-hub.local',
        'name': 'Platform Administrator',
        'role': 'SUPER_ADMIN',
        'org_id': None,
    },
    {
        'id': uuid.UUID('00000000-0000-0000-0000-000000000101'),
        'email': 'quality.manager@demo.local',
        'name': 'Quality Manager',
        'role': 'ACCOUNT_ADMIN',
        'org_id': DEMO_ORG_ID,
    },
    {
        'id': uuid.UUID('00000000-0000-0000-0000-000000000102'),
        'email': 'ciso@demo.local',
        'name': 'Information Security Officer',
        'role': 'USER',
        'org_id': DEMO_ORG_ID,
    },
    {
        'id': uuid.UUID('00000000-0000-0000-0000-000000000103'),
        'email': 'auditor@demo.local',
        'name': 'Internal Auditor',
        'role': 'USER',
        'org_id': DEMO_ORG_ID,
    },
]

# Shared agents (org_id NULL) are available to every organization.
AGENTS = [
    ('Document Reviewer', 'DOCUMENT_REVIEWER', 'Reviews documents against clause requirements'),
    ('Compliance Checker', 'COMPLIANCE_CHECKER', 'Raises follow-up actions for reported events'),
    ('Risk Assessor', 'RISK_ASSESSOR', 'Assesses likelihood and impact of identified risks'),
    ('Audit Assistant', 'AUDIT_ASSISTANT', 'Prepares evidence for internal audits'),
]

CLAUSES = [
    ('ISO_9001_2015', '4.1', 'Understanding the organization and its context'),
    ('ISO_9001_2015', '5.2', 'Quality policy'),
    ('ISO_9001_2015', '7.5', 'Documented information'),
    ('ISO_9001_2015', '8.7', 'Control of nonconforming outputs'),
    ('ISO_9001_2015', '9.2', 'Internal audit'),
    ('ISO_9001_2015', '9.3', 'Management review'),
    ('ISO_9001_2015', '10.2', 'Nonconformity and corrective action'),
    ('ISO_27001_2022', '5.2', 'Information security policy'),
    ('ISO_27001_2022', '6.1.2', 'Information security risk assessment'),
    ('ISO_27001_2022', '6.1.3', 'Information security risk treatment'),
    ('ISO_27001_2022', '9.2', 'Internal audit'),
    ('ISO_27001_2022', 'A.5.24', 'Information security incident management planning and preparation'),
]

ARTEFACTS = [
    ('Quality Manual', 'APPROVED'),
    ('Information Security Policy', 'APPROVED'),
    ('Corrective Action Procedure', 'UNDER_REVIEW'),
    ('Risk Treatment Plan', 'DRAFT'),
]


def seed():
    """Seed database with demo data."""
    init_db()
    db = SessionLocal()

    try:
        if db.query(Organization).filter(Organization.id == DEMO_ORG_ID).first():
            print("Demo data already present, nothing to do")
            return

        db.add(Organization(id=DEMO_ORG_ID, name="Demo Manufacturing Ltd"))
        db.flush()

        for data in USERS:
            db.add(User(**data))

        for name, agent_type, description in AGENTS:
            db.add(AIAgent(org_id=None, name=name, type=agent_type, description=description))

        for standard, number, title in CLAUSES:
            db.add(Clause(org_id=DEMO_ORG_ID, standard=standard, clause_number=number, title=title))

        for title, status in ARTEFACTS:
            db.add(Artefact(org_id=DEMO_ORG_ID, title=title, status=status))

        db.commit()
        print(f"Seeded {len(USERS)} users, {len(AGENTS)} agents, {len(CLAUSES)} clauses, {len(ARTEFACTS)} artefacts")
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    seed()
