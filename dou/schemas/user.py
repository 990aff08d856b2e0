"""Demo user schemas."""

from pydantic import BaseModel


class User(BaseModel):
    name: str = ""
    email: str = ""

    def validation_errors(self) -> list[ValueError]:
        """Return every failed requirement, in field order."""
        errs: list[ValueError] = []
        if not self.name:
            errs.append(ValueError("User: name is required"))
        if not self.email:
            errs.append(ValueError("User: email is required"))
        return errs
