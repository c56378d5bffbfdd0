"""
認可URL構築のユニットテスト
"""

import unittest
from urllib.parse import parse_qs, urlsplit

from weddy.auth.authorize import AuthorizationRequestBuilder, build_authorization_url
from weddy.auth.state import StateCodec
from weddy.config.provider import KAKAO_AUTH_URL, NAVER_AUTH_URL, ProviderConfig
from weddy.errors import ConfigurationException, ErrorCode
from weddy.models import Role, SocialProvider


def _kakao_config(**overrides):
    values = dict(
        provider=SocialProvider.KAKAO,
        auth_url=KAKAO_AUTH_URL,
        client_id="kakao-client",
        redirect_uri="http://localhost:3000/auth/kakao/callback",
        state_style="json",
        extra_params={"prompt": "login"},
    )
    values.update(overrides)
    return ProviderConfig(**values)


def _naver_config(**overrides):
    values = dict(
        provider=SocialProvider.NAVER,
        auth_url=NAVER_AUTH_URL,
        client_id="naver-client",
        redirect_uri="http://localhost:3000/auth/naver/callback",
        state_style="plain",
    )
    values.update(overrides)
    return ProviderConfig(**values)


class TestAuthorizationRequestBuilder(unittest.TestCase):
    """AuthorizationRequestBuilderのテスト"""

    def setUp(self):
        self.builder = AuthorizationRequestBuilder()

    def _query(self, url):
        return {key: values[0] for key, values in parse_qs(urlsplit(url).query).items()}

    def test_kakao_url(self):
        url = self.builder.build_authorization_url(SocialProvider.KAKAO, Role.OWNER, _kakao_config())
        self.assertTrue(url.startswith(KAKAO_AUTH_URL + "?"))
        query = self._query(url)
        self.assertEqual(query["response_type"], "code")
        self.assertEqual(query["client_id"], "kakao-client")
        self.assertEqual(query["redirect_uri"], "http://localhost:3000/auth/kakao/callback")
        self.assertEqual(query["prompt"], "login")
        self.assertEqual(StateCodec.decode(query["state"]), Role.OWNER)

    def test_naver_url_uses_plain_state(self):
        url = self.builder.build_authorization_url(SocialProvider.NAVER, Role.OWNER, _naver_config())
        self.assertTrue(url.startswith(NAVER_AUTH_URL + "?"))
        query = self._query(url)
        self.assertEqual(query["state"], "OWNER")
        self.assertNotIn("prompt", query)

    def test_redirect_uri_is_encoded(self):
        url = self.builder.build_authorization_url(SocialProvider.NAVER, Role.CUSTOMER, _naver_config())
        self.assertIn("redirect_uri=http%3A%2F%2Flocalhost%3A3000%2Fauth%2Fnaver%2Fcallback", url)

    def test_extra_params_do_not_override_core_params(self):
        config = _kakao_config(extra_params={"state": "hijack", "prompt": "login"})
        query = self._query(self.builder.build_authorization_url(SocialProvider.KAKAO, Role.CUSTOMER, config))
        self.assertEqual(StateCodec.decode(query["state"]), Role.CUSTOMER)
        self.assertNotEqual(query["state"], "hijack")

    def test_same_input_same_url(self):
        first = self.builder.build_authorization_url(SocialProvider.KAKAO, Role.OWNER, _kakao_config())
        second = self.builder.build_authorization_url(SocialProvider.KAKAO, Role.OWNER, _kakao_config())
        self.assertEqual(first, second)

    def test_missing_client_id_raises(self):
        with self.assertRaises(ConfigurationException) as ctx:
            self.builder.build_authorization_url(
                SocialProvider.KAKAO, Role.CUSTOMER, _kakao_config(client_id="")
            )
        self.assertTrue(ctx.exception.is_code(ErrorCode.CONFIG_MISSING_VALUE))
        self.assertIn("client_id", ctx.exception.error.details["missing_fields"])

    def test_missing_redirect_uri_raises(self):
        with self.assertRaises(ConfigurationException):
            self.builder.build_authorization_url(
                SocialProvider.NAVER, Role.CUSTOMER, _naver_config(redirect_uri="  ")
            )

    def test_provider_mismatch_raises(self):
        with self.assertRaises(ConfigurationException):
            self.builder.build_authorization_url(SocialProvider.NAVER, Role.CUSTOMER, _kakao_config())

    def test_module_shortcut(self):
        url = build_authorization_url(SocialProvider.NAVER, Role.CUSTOMER, _naver_config())
        self.assertIn("state=CUSTOMER", url)


if __name__ == "__main__":
    unittest.main()
