from pydantic import BaseModel, Field

class Eligibility(BaseModel):
    """Borrowing standing of a patron, as reported by the Patron Directory."""
    active_loan_count: int = Field(default=0, ge=0)
    has_overdue_loan: bool = False
    max_concurrent_loans: int = Field(default=5, ge=0)

    @property
    def at_loan_limit(self) -> bool:
        return self.active_loan_count >= self.max_concurrent_loans
