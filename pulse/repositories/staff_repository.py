from uuid import UUID

from pulse.core.tenant import TenantContext
from pulse.models.staff import StaffMember, StaffRole


class StaffRepository:
    def __init__(self, ctx: TenantContext):
        self.ctx = ctx

    def get_all(self) -> list[StaffMember]:
        return self.ctx.query(StaffMember).order_by(StaffMember.created_at.asc()).all()

    def get_by_id(self, staff_id: UUID) -> StaffMember | None:
        return self.ctx.query(StaffMember).filter(StaffMember.id == staff_id).first()

    def get_by_email(self, email: str) -> StaffMember | None:
        return (
            self.ctx.query(StaffMember)
            .filter(StaffMember.email == email.strip().lower())
            .first()
        )

    def create(self, email: str, role: StaffRole = StaffRole.STAFF) -> StaffMember:
        member = StaffMember(email=email.strip().lower(), role=role.value)
        self.ctx.add(member)
        self.ctx.db.commit()
        self.ctx.db.refresh(member)
        return member
