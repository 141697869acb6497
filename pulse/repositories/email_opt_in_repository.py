from pulse.core.tenant import TenantContext
from pulse.models.email_opt_in import EmailOptIn


class EmailOptInRepository:
    def __init__(self, ctx: TenantContext):
        self.ctx = ctx

    def get_all(self) -> list[EmailOptIn]:
        return self.ctx.query(EmailOptIn).order_by(EmailOptIn.consent_at.desc()).all()

    def get_by_email(self, email: str) -> EmailOptIn | None:
        return self.ctx.query(EmailOptIn).filter(EmailOptIn.email == email).first()

    def create(self, email: str) -> EmailOptIn:
        """Insert an opt-in; raises ``IntegrityError`` if the email is already stored."""
        opt_in = EmailOptIn(email=email)
        self.ctx.add(opt_in)
        self.ctx.db.commit()
        self.ctx.db.refresh(opt_in)
        return opt_in

    def count(self) -> int:
        return self.ctx.query(EmailOptIn).count()
