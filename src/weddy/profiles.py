"""
プロフィールモデル

役割(role)を判別子とするタグ付きユニオンとしてプロフィールを定義する。
バックエンドのレスポンスはcamelCaseのため、エイリアスで受け取る。
"""

from typing import Annotated, Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel

from weddy.models import Role


class _ProfileBase(BaseModel):
    """両役割に共通するフィールド"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )

    id: Optional[int] = None
    name: Optional[str] = None
    email: Optional[str] = None
    social_id: Optional[str] = None
    age: Optional[int] = None
    phone_number: Optional[str] = None


class CustomerProfile(_ProfileBase):
    """顧客プロフィール"""

    role: Literal[Role.CUSTOMER] = Role.CUSTOMER

    address: Optional[str] = None
    zip_code: Optional[str] = None
    road_address: Optional[str] = None
    jibun_address: Optional[str] = None
    detail_address: Optional[str] = None
    sido: Optional[str] = None
    sigungu: Optional[str] = None
    dong: Optional[str] = None
    building_name: Optional[str] = None
    wedding_sido: Optional[str] = None
    wedding_sigungu: Optional[str] = None
    wedding_date: Optional[str] = None

    @property
    def needs_signup(self) -> bool:
        """電話番号が未登録なら初回ログインとみなす"""
        return not self.phone_number


class OwnerProfile(_ProfileBase):
    """事業者(オーナー)プロフィール"""

    role: Literal[Role.OWNER] = Role.OWNER

    profile_image: Optional[str] = None
    bz_number: Optional[str] = None
    bank_account: Optional[str] = None
    social_provider: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def needs_signup(self) -> bool:
        """事業者番号が未登録なら初回ログインとみなす"""
        return not self.bz_number


Profile = Annotated[Union[CustomerProfile, OwnerProfile], Field(discriminator="role")]

_PROFILE_ADAPTER: TypeAdapter[Union[CustomerProfile, OwnerProfile]] = TypeAdapter(Profile)


def parse_profile(role: Role, payload: Dict[str, Any]) -> Union[CustomerProfile, OwnerProfile]:
    """バックエンドのレスポンスを役割付きプロフィールに変換する

    レスポンスは役割を含まないため、取得に使ったエンドポイントの役割を
    判別子として注入する。

    Args:
        role: 取得に使った役割
        payload: バックエンドのレスポンスボディ

    Returns:
        役割に対応するプロフィール

    Raises:
        pydantic.ValidationError: ペイロードが不正な場合
    """
    data = dict(payload)
    data.pop("userRole", None)
    data["role"] = role
    return _PROFILE_ADAPTER.validate_python(data)
