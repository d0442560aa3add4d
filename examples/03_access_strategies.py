"""
Example 03: Access Strategies

This example shows how AUTO, METHOD and FIELD reach a target that has a
validating setter for one property and a plain field for another.
"""

from dataclasses import dataclass
from typing import Optional

from patch_merge import AccessStrategy, MergeConfig, PropertyUpdateError, create


class Account:
    nickname: Optional[str] = None

    def __init__(self):
        self._email = "old@x.com"
        self.nickname = "old"

    @property
    def email(self):
        return self._email

    @email.setter
    def email(self, value: str):
        if "@" not in value:
            raise ValueError(f"invalid email {value!r}")
        self._email = value.lower()

    def __repr__(self):
        return f"Account(email={self._email!r}, nickname={self.nickname!r})"


@dataclass
class AccountPatch:
    nickname: Optional[str] = None
    email: Optional[str] = None


def main():
    patch = AccountPatch(email="NEW@X.COM", nickname="neo")

    for strategy in AccessStrategy:
        engine = create(MergeConfig.builder().with_access_strategy(strategy).build())
        account = engine.update(Account(), patch)
        print(f"{strategy.value:>6}: {account}")

    # Setter failures are reported per property; earlier writes stay
    try:
        create().update(Account(), AccountPatch(nickname="neo", email="broken"))
    except PropertyUpdateError as e:
        print(f"\nError: {e} (caused by {type(e.__cause__).__name__})")


if __name__ == "__main__":
    main()
