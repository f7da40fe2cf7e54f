"""Tests for dynamic {{$...}} generators."""

import ipaddress
import re

import pytest

from reqfile import fakedata
from reqfile.sysvars import (
    ALPHANUMERIC_UNDERSCORE,
    HEX,
    DynamicContext,
    generate_request_scoped_variables,
    is_dynamic_placeholder,
    substitute_dynamic_variables,
)


def _sub(text, **kwargs):
    kwargs.setdefault("environ", {})
    return substitute_dynamic_variables(text, DynamicContext(**kwargs))


class TestRequestScoped:
    def test_aliases_share_one_uuid(self):
        values = generate_request_scoped_variables()
        assert values["$uuid"] == values["$guid"] == values["$random.uuid"]

    def test_fresh_per_call(self):
        assert generate_request_scoped_variables()["$uuid"] != generate_request_scoped_variables()["$uuid"]

    def test_timestamps(self):
        values = generate_request_scoped_variables()
        assert values["$timestamp"].isdigit()
        assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}Z", values["$isoTimestamp"])
        assert 0 <= int(values["$randomInt"]) <= 1000


# ── Numbers ─────────────────────────────────────────────────────────────


class TestNumbers:
    def test_random_int_default_range(self):
        for _ in range(20):
            assert 0 <= int(_sub("{{$randomInt}}")) <= 100

    def test_random_int_range(self):
        for _ in range(20):
            assert 5 <= int(_sub("{{$randomInt 5 7}}")) <= 7

    def test_random_int_negative_range(self):
        assert -3 <= int(_sub("{{ $random.integer -3 -1 }}")) <= -1

    def test_random_int_non_numeric_stays(self):
        assert _sub("{{$randomInt abc def}}") == "{{$randomInt abc def}}"

    def test_random_int_swapped_bounds_stays(self):
        assert _sub("{{$randomInt 10 1}}") == "{{$randomInt 10 1}}"

    def test_random_float(self):
        value = _sub("{{$randomFloat 1.5 2.5}}")
        assert re.fullmatch(r"\d+\.\d{6}", value)
        assert 1.5 <= float(value) <= 2.5

    def test_random_float_swapped_bounds_stays(self):
        assert _sub("{{$random.float 2 1}}") == "{{$random.float 2 1}}"

    def test_each_occurrence_is_independent(self):
        values = {_sub("{{$randomInt 1 1000000000}}") for _ in range(5)}
        assert len(values) > 1


# ── Strings ─────────────────────────────────────────────────────────────


class TestStrings:
    def test_hex_length(self):
        value = _sub("{{$randomHex 32}}")
        assert len(value) == 32
        assert set(value) <= set(HEX)

    def test_default_length(self):
        value = _sub("{{$randomAlphaNumeric}}")
        assert len(value) == 16
        assert set(value) <= set(ALPHANUMERIC_UNDERSCORE)

    def test_zero_length(self):
        assert _sub("[{{$random.alphabetic 0}}]") == "[]"

    def test_alphabetic(self):
        assert _sub("{{$random.alphabetic 40}}").isalpha()

    def test_password_default(self):
        assert len(_sub("{{$randomPassword}}")) == 12

    def test_password_charset_override(self):
        value = _sub("{{$randomPassword 30}}", programmatic={"password": {"charset": "ab"}})
        assert len(value) == 30
        assert set(value) <= {"a", "b"}

    def test_boolean(self):
        assert _sub("{{$randomBoolean}}") in ("true", "false")

    def test_email(self):
        assert re.fullmatch(r"[^@\s]+@[^@\s]+\.[a-z]+", _sub("{{$randomEmail}}"))
        assert "@" in _sub("{{$random.email}}")

    def test_domain(self):
        assert re.fullmatch(r"[a-z0-9.-]+\.[a-z]+", _sub("{{$randomDomain}}"))

    def test_ipv4(self):
        ipaddress.IPv4Address(_sub("{{$randomIPv4}}"))

    def test_ipv6(self):
        ipaddress.IPv6Address(_sub("{{$randomIPv6}}"))

    def test_uuid(self):
        assert re.fullmatch(r"[0-9a-f-]{36}", _sub("{{$randomUUID}}"))

    def test_color(self):
        assert re.fullmatch(r"#[0-9a-f]{6}", _sub("{{$randomColor}}"))

    def test_word(self):
        assert re.fullmatch(r"\S+", _sub("{{$randomWord}}"))


class TestFakers:
    @pytest.mark.parametrize("suffix", sorted(fakedata.FAKERS))
    def test_both_spellings_resolve(self, suffix):
        dotted = suffix[0].lower() + suffix[1:]
        for placeholder in (f"{{{{$random{suffix}}}}}", f"{{{{$random.{dotted}}}}}"):
            value = _sub(placeholder)
            assert value
            assert "{{" not in value

    def test_seeded_instance_is_reproducible(self):
        fakedata.fake.seed_instance(1234)
        first = _sub("{{$randomFullName}} {{$randomCity}}")
        fakedata.fake.seed_instance(1234)
        assert _sub("{{$randomFullName}} {{$randomCity}}") == first

    def test_full_name(self):
        assert " " in _sub("{{$randomFullName}}").strip()

    def test_phone_number(self):
        assert re.search(r"\d", _sub("{{$randomPhoneNumber}}"))

    def test_zip_code(self):
        assert re.fullmatch(r"\d{5}", _sub("{{$random.zipCode}}"))

    def test_mac_address(self):
        assert re.fullmatch(r"([0-9a-f]{2}:){5}[0-9a-f]{2}", _sub("{{$randomMacAddress}}"))

    def test_url(self):
        assert re.match(r"https?://", _sub("{{$randomUrl}}"))


# ── Environment lookups ─────────────────────────────────────────────────


class TestEnvironmentLookups:
    def test_env(self):
        assert _sub("{{$env.HOME_DIR}}", environ={"HOME_DIR": "/home/me"}) == "/home/me"

    def test_env_unset_is_empty(self):
        assert _sub("[{{$env.NOPE}}]") == "[]"

    def test_process_env(self):
        assert _sub("{{$processEnv TOKEN}}", environ={"TOKEN": "t0k"}) == "t0k"

    def test_process_env_unset_stays(self):
        assert _sub("{{$processEnv TOKEN}}") == "{{$processEnv TOKEN}}"

    def test_process_env_encoded(self):
        text = "https://x.test/?t=%7B%7B$processEnv TOKEN%7D%7D"
        assert _sub(text, environ={"TOKEN": "abc"}) == "https://x.test/?t=abc"

    def test_dotenv(self):
        assert _sub("{{$dotenv API_KEY}}", dotenv={"API_KEY": "k"}) == "k"

    def test_dotenv_missing_is_empty(self):
        assert _sub("[{{$dotenv API_KEY}}]") == "[]"

    def test_dotenv_encoded(self):
        assert _sub("%7B%7B$dotenv API_KEY%7D%7D", dotenv={"API_KEY": "k"}) == "k"


class TestDatetime:
    def test_default_is_iso(self):
        assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}Z", _sub("{{$datetime}}"))

    def test_rfc1123(self):
        value = _sub("{{$datetime rfc1123}}")
        assert re.fullmatch(r"\w{3}, \d{2} \w{3} \d{4} \d{2}:\d{2}:\d{2} UTC", value)

    def test_timestamp(self):
        assert _sub("{{$datetime timestamp}}").isdigit()

    def test_quoted_format(self):
        assert re.fullmatch(r"\d{4}-.*Z", _sub('{{$datetime "iso8601"}}'))

    def test_local_datetime(self):
        value = _sub("{{$localDatetime iso8601}}")
        assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(Z|[+-]\d{2}:\d{2})", value)

    def test_unsupported_format_stays(self):
        assert _sub('{{$datetime "YYYY-MM-DD"}}') == '{{$datetime "YYYY-MM-DD"}}'


class TestMisc:
    def test_unknown_generator_stays(self):
        assert _sub("{{$nope}} {{plain}}") == "{{$nope}} {{plain}}"

    def test_text_without_placeholders_is_returned(self):
        assert _sub("plain text") == "plain text"

    @pytest.mark.parametrize(
        "value, expected",
        [
            ("{{$randomInt 1 5}}", True),
            ("  {{$randomHex}} ", True),
            ("{{$uuid}}", False),
            ("{{$nope}}", False),
            ("prefix {{$randomInt}}", False),
            ("{{host}}", False),
        ],
    )
    def test_is_dynamic_placeholder(self, value, expected):
        assert is_dynamic_placeholder(value, {"$uuid": "x"}) is expected
