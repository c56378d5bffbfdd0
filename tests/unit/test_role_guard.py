"""
RoleGuardのユニットテスト
"""

import unittest

from weddy.auth.guard import RoleGuard
from weddy.models import Role
from weddy.profiles import CustomerProfile, OwnerProfile


class TestRoleGuard(unittest.TestCase):
    """RoleGuard.narrowのテスト"""

    def test_matching_role_returns_profile(self):
        customer = CustomerProfile(name="Kim")
        owner = OwnerProfile(name="Lee")
        self.assertIs(RoleGuard.narrow(customer, Role.CUSTOMER), customer)
        self.assertIs(RoleGuard.narrow(owner, Role.OWNER), owner)

    def test_mismatching_role_returns_none(self):
        self.assertIsNone(RoleGuard.narrow(CustomerProfile(name="Kim"), Role.OWNER))
        self.assertIsNone(RoleGuard.narrow(OwnerProfile(name="Lee"), Role.CUSTOMER))

    def test_none_profile(self):
        self.assertIsNone(RoleGuard.narrow(None, Role.CUSTOMER))

    def test_narrowed_owner_exposes_owner_fields(self):
        narrowed = RoleGuard.narrow(OwnerProfile(bz_number="123"), Role.OWNER)
        self.assertEqual(narrowed.bz_number, "123")


if __name__ == "__main__":
    unittest.main()
