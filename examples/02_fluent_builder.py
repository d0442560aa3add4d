"""
Example 02: Fluent Builder

This example renames and transforms source properties for a single update
without touching the source object.
"""

from dataclasses import dataclass
from typing import Optional

from patch_merge import Engine


@dataclass
class SignupForm:
    name: Optional[str] = None
    email: Optional[str] = None


class Subscriber:
    def __init__(self):
        self.name = "Anonymous"
        self.contact_email = None

    def __repr__(self):
        return f"Subscriber(name={self.name!r}, contact_email={self.contact_email!r})"


def main():
    engine = Engine()
    form = SignupForm(name="  Ada Lovelace ", email="ADA@Example.COM")

    subscriber = (
        engine.for_target(Subscriber())
        .with_mapping("email", "contact_email")
        .with_transformer("email", str.lower)
        .with_transformer("name", str.strip)
        .update(form)
    )

    print(f"Source: {form}")
    print(f"Target: {subscriber}\n")

    # Transformers never receive None
    empty = engine.for_target(Subscriber()).with_transformer("email", str.lower).update(SignupForm())
    print(f"Empty form leaves target as is: {empty}\n")


if __name__ == "__main__":
    main()
