"""Tests for OAuth 1.0a request signing."""

from __future__ import annotations

import pytest

from chppsync.core.oauth import (
    AccessToken,
    ConsumerCredentials,
    RequestToken,
    SigningContext,
    compute_signature,
    generate_nonce,
    normalize_url,
    oauth_parameters,
    percent_encode,
    sign,
    signature_base_string,
    signing_key,
)

# Reference request from the OAuth 1.0 protocol document (photos.example.net)
CONSUMER = ConsumerCredentials(key="dpf43f3p2l4k3l03", secret="kd94hf93k423kf44")
TOKEN = AccessToken(token="nnch734d00sl2jdk", secret="pfkkdhi9sl3r4s00")
NONCE = "kllo9940pd9333jh"
TIMESTAMP = "1191242096"
EXPECTED_SIGNATURE = "tR3+Ty81lMeYAr/Fid0kMTYa/WM="


def reference_context() -> SigningContext:
    return SigningContext(consumer=CONSUMER, token=TOKEN, nonce=NONCE, timestamp=TIMESTAMP)


class TestPercentEncode:
    """Tests for percent_encode."""

    def test_unreserved_kept(self) -> None:
        """Should keep ALPHA, DIGIT and -._~ unchanged."""
        assert percent_encode("AZaz09-._~") == "AZaz09-._~"

    def test_reserved_encoded(self) -> None:
        """Should encode reserved characters with uppercase hex."""
        assert percent_encode("a b&c=d/e+f") == "a%20b%26c%3Dd%2Fe%2Bf"

    def test_utf8_encoded(self) -> None:
        """Should encode non-ASCII as UTF-8 bytes."""
        assert percent_encode("é") == "%C3%A9"


class TestNormalizeUrl:
    """Tests for normalize_url."""

    def test_lowercases_scheme_and_host(self) -> None:
        """Should lowercase scheme and host but keep the path."""
        assert normalize_url("HTTPS://CHPP.Hattrick.org/ChppXml.ashx") == (
            "https://chpp.hattrick.org/ChppXml.ashx"
        )

    def test_drops_default_port_and_query(self) -> None:
        """Should drop default ports and the query string."""
        assert normalize_url("http://example.com:80/r?x=1") == "http://example.com/r"

    def test_keeps_custom_port(self) -> None:
        """Should keep a non-default port."""
        assert normalize_url("http://example.com:8080/r") == "http://example.com:8080/r"

    def test_rejects_malformed(self) -> None:
        """Should raise ValueError for a URL without scheme or host."""
        with pytest.raises(ValueError):
            normalize_url("not a url")


class TestSignatureBaseString:
    """Tests for the signature base string."""

    def test_reference_base_string(self) -> None:
        """Should match the OAuth 1.0 reference base string."""
        params = list(oauth_parameters(reference_context()).items())
        params += [("file", "vacation.jpg"), ("size", "original")]

        base = signature_base_string("get", "http://photos.example.net/photos", params)

        assert base == (
            "GET&http%3A%2F%2Fphotos.example.net%2Fphotos&"
            "file%3Dvacation.jpg%26oauth_consumer_key%3Ddpf43f3p2l4k3l03%26"
            "oauth_nonce%3Dkllo9940pd9333jh%26oauth_signature_method%3DHMAC-SHA1%26"
            "oauth_timestamp%3D1191242096%26oauth_token%3Dnnch734d00sl2jdk%26"
            "oauth_version%3D1.0%26size%3Doriginal"
        )

    def test_signing_key_without_token(self) -> None:
        """Should end the key with '&' when no token secret is available."""
        context = SigningContext(consumer=CONSUMER, token=None, nonce=NONCE, timestamp=TIMESTAMP)
        assert signing_key(context) == "kd94hf93k423kf44&"


class TestSign:
    """Tests for sign()."""

    def test_reference_signature(self) -> None:
        """Should produce the reference HMAC-SHA1 signature."""
        header = sign(
            "GET",
            "http://photos.example.net/photos",
            {"file": "vacation.jpg", "size": "original"},
            reference_context(),
        )
        assert 'oauth_signature="tR3%2BTy81lMeYAr%2FFid0kMTYa%2FWM%3D"' in header

    def test_query_on_url_is_signed(self) -> None:
        """Should give the same signature whether params are passed or on the URL."""
        from_params = sign(
            "GET",
            "http://photos.example.net/photos",
            {"file": "vacation.jpg", "size": "original"},
            reference_context(),
        )
        from_url = sign(
            "GET",
            "http://photos.example.net/photos?file=vacation.jpg&size=original",
            None,
            reference_context(),
        )
        assert from_params == from_url

    def test_compute_signature(self) -> None:
        """Should base64-encode the HMAC-SHA1 digest."""
        params = list(oauth_parameters(reference_context()).items())
        params += [("file", "vacation.jpg"), ("size", "original")]
        base = signature_base_string("GET", "http://photos.example.net/photos", params)
        assert compute_signature(base, signing_key(reference_context())) == EXPECTED_SIGNATURE

    def test_header_format(self) -> None:
        """Should build an 'OAuth k="v", ...' header with every protocol parameter."""
        header = sign("GET", "http://photos.example.net/photos", None, reference_context())

        assert header.startswith("OAuth ")
        for name in (
            "oauth_consumer_key",
            "oauth_nonce",
            "oauth_signature",
            "oauth_signature_method",
            "oauth_timestamp",
            "oauth_token",
            "oauth_version",
        ):
            assert f'{name}="' in header
        assert 'oauth_signature_method="HMAC-SHA1"' in header
        assert 'oauth_version="1.0"' in header

    def test_callback_and_verifier_included(self) -> None:
        """Should include oauth_callback and oauth_verifier when set."""
        request_token = RequestToken(token="req", secret="reqsecret")
        callback_header = sign(
            "POST",
            "https://chpp.hattrick.org/oauth/request_token.ashx",
            None,
            SigningContext.create(CONSUMER).with_callback("oob"),
        )
        verifier_header = sign(
            "POST",
            "https://chpp.hattrick.org/oauth/access_token.ashx",
            None,
            SigningContext.create(CONSUMER, request_token).with_verifier("1234"),
        )

        assert 'oauth_callback="oob"' in callback_header
        assert "oauth_token=" not in callback_header
        assert 'oauth_verifier="1234"' in verifier_header
        assert 'oauth_token="req"' in verifier_header

    def test_sign_is_deterministic(self) -> None:
        """Should return the same header for the same inputs."""
        args = ("GET", "http://photos.example.net/photos", {"a": "1"})
        assert sign(*args, reference_context()) == sign(*args, reference_context())


class TestSigningContext:
    """Tests for SigningContext freshness."""

    def test_nonce_is_32_hex_chars(self) -> None:
        """Should generate 32 hexadecimal characters."""
        nonce = generate_nonce()
        assert len(nonce) == 32
        int(nonce, 16)

    def test_contexts_have_distinct_nonces(self) -> None:
        """Should never reuse a nonce across contexts."""
        nonces = {SigningContext.create(CONSUMER, TOKEN).nonce for _ in range(100)}
        assert len(nonces) == 100

    def test_timestamp_is_numeric(self) -> None:
        """Should carry the current time in whole seconds."""
        assert SigningContext.create(CONSUMER).timestamp.isdigit()

    def test_builders_return_copies(self) -> None:
        """Should leave the original context unchanged."""
        context = SigningContext.create(CONSUMER)
        with_token = context.with_token(TOKEN)

        assert context.token is None
        assert with_token.token == TOKEN
        assert with_token.nonce == context.nonce
