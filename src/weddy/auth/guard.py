"""役割によるプロフィールの絞り込み。"""

from __future__ import annotations

from typing import Literal, Optional, Union, overload

from weddy.models import Role
from weddy.profiles import CustomerProfile, OwnerProfile

AnyProfile = Union[CustomerProfile, OwnerProfile]


class RoleGuard:
    """プロフィールが期待する役割のものかを判定する。

    Noneは「アクセス拒否/再ログイン」として扱うこと。空のプロフィールとして扱ってはならない。
    """

    @overload
    @staticmethod
    def narrow(profile: Optional[AnyProfile], expected_role: Literal[Role.CUSTOMER]) -> Optional[CustomerProfile]: ...

    @overload
    @staticmethod
    def narrow(profile: Optional[AnyProfile], expected_role: Literal[Role.OWNER]) -> Optional[OwnerProfile]: ...

    @overload
    @staticmethod
    def narrow(profile: Optional[AnyProfile], expected_role: Role) -> Optional[AnyProfile]: ...

    @staticmethod
    def narrow(profile: Optional[AnyProfile], expected_role: Role) -> Optional[AnyProfile]:
        if profile is None:
            return None
        if profile.role == expected_role:
            return profile
        return None
