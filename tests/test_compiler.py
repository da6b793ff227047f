"""Tests for configuration compilation and validation."""

import pytest
from pydantic import ValidationError

from cache_policy.behaviors import Behavior, Configuration
from cache_policy.common.exceptions import (
    ConfigurationError,
    InvalidBackendError,
    InvalidPatternError,
    MisplacedWildcardBehaviorError,
    NoDefaultBackendError,
    UnresolvedProxyTargetError,
)
from cache_policy.compiler import behavior_order, compile_configuration
from cache_policy.policy import CookieMode, PolicySettings


def _single(errors, kind):
    matching = [e for e in errors if isinstance(e, kind)]
    assert len(matching) == 1, errors
    return matching[0]


class TestCompileConfiguration:
    """Test successful compilation"""

    def test_compiles_example(self, configuration):
        assert isinstance(configuration, Configuration)
        assert configuration.ids == ("dashboard", "s3_proxy")
        assert len(configuration) == 2
        assert configuration.primary.id == "dashboard"
        assert "s3_proxy" in configuration
        assert configuration.get("missing") is None

    def test_backend_fields(self, configuration):
        dashboard = configuration["dashboard"]

        assert dashboard.origin == "https://dashboard.example.com"
        assert dashboard.origin_host == "dashboard.example.com"
        assert dashboard.aliases == ("dashboard-host", "alias.example.com")
        assert dashboard.log_target == "example-log.s3.amazonaws.com/prefix"
        assert len(dashboard.behaviors) == 3
        assert dashboard.default.is_wildcard
        assert dashboard.default.headers == ("Authorization",)
        assert dashboard.default.policy.cookies.mode is CookieMode.ALL

    def test_behavior_fields(self, configuration):
        first, proxied, png = configuration["dashboard"].behaviors

        assert [str(p) for p in first.patterns] == ["/hello*", "/world*"]
        assert first.policy.cookies.names == ("session",)
        assert proxied.proxy_target == "s3_proxy"
        assert png.matches("/img/logo.png")
        assert not png.matches("/img/logo.gif")

    def test_order_preserved(self, configuration):
        """Backends and behaviors keep their declared order"""
        patterns = [str(p) for p, _ in behavior_order(configuration["dashboard"])]
        assert patterns == ["/hello*", "/world*", "/s3_asset/*", "/*.png"]

    def test_behavior_order_excludes_default(self, configuration):
        pairs = behavior_order(configuration["s3_proxy"])
        assert len(pairs) == 1
        assert pairs[0][1] is not configuration["s3_proxy"].default

    def test_canonical_host(self, configuration):
        assert configuration["s3_proxy"].canonical_host == "assets.example.com"

    def test_canonical_host_without_aliases(self, make_behavior):
        configuration = compile_configuration(
            {"bucket": {"origin": "example.s3.amazonaws.com/prefix", "default": make_behavior()}}
        )
        assert configuration["bucket"].canonical_host == "example.s3.amazonaws.com"

    def test_lone_backend_is_primary(self, make_behavior):
        """A single backend serves unknown hosts without a primary flag"""
        configuration = compile_configuration(
            {"only": {"origin": "https://only.example.com", "default": make_behavior()}}
        )
        assert configuration.primary.id == "only"
        assert configuration["only"].is_primary

    def test_empty_pattern_list_allowed(self, make_behavior):
        """A behavior with no patterns never matches but is not an error"""
        configuration = compile_configuration(
            {
                "only": {
                    "origin": "o",
                    "behaviors": [make_behavior(path=[])],
                    "default": make_behavior(),
                }
            }
        )
        behavior = configuration["only"].behaviors[0]
        assert behavior.patterns == ()
        assert not behavior.matches("/")

    def test_custom_settings(self, raw_config):
        settings = PolicySettings(cookie_carrier_prefix="X-Cookie-")
        configuration = compile_configuration(raw_config, settings)

        policy = configuration["dashboard"].behaviors[0].policy
        assert "X-Cookie-session" in policy.vary

    def test_tls_cert_read_only(self, raw_config):
        raw_config["dashboard"]["ssl_cert"] = {"SslSupportMethod": "sni-only"}
        configuration = compile_configuration(raw_config)

        cert = configuration["dashboard"].tls_cert
        assert cert["SslSupportMethod"] == "sni-only"
        with pytest.raises(TypeError):
            cert["SslSupportMethod"] = "vip"

    def test_compiled_models_frozen(self, configuration):
        backend = configuration["dashboard"]

        with pytest.raises(ValidationError):
            backend.origin = "https://other.example.com"
        with pytest.raises(ValidationError):
            backend.default.proxy_target = "s3_proxy"
        assert hash(backend.default) == hash(backend.default)

    def test_behavior_requires_cache_policy(self):
        with pytest.raises(ValidationError):
            Behavior(patterns=None, policy={"headers": ()})

    def test_input_not_retained(self, raw_config):
        """Mutating the input after compilation changes nothing"""
        configuration = compile_configuration(raw_config)
        raw_config["dashboard"]["aliases"].append("late.example.com")

        assert "late.example.com" not in configuration["dashboard"].aliases


class TestCompileErrors:
    """Test validation failures"""

    def test_invalid_pattern(self, raw_config):
        raw_config["dashboard"]["behaviors"][0]["path"] = ["/hello*", "/a?b*"]

        with pytest.raises(ConfigurationError) as exc_info:
            compile_configuration(raw_config)

        error = _single(exc_info.value.errors, InvalidPatternError)
        assert error.pattern == "/a?b*"
        assert error.backend_id == "dashboard"

    @pytest.mark.parametrize("pattern", ["ab*", "/" + "a" * 300, "/foo ", " /foo"])
    def test_rejected_patterns(self, raw_config, pattern):
        raw_config["s3_proxy"]["behaviors"][0]["path"] = pattern

        with pytest.raises(ConfigurationError) as exc_info:
            compile_configuration(raw_config)

        assert _single(exc_info.value.errors, InvalidPatternError).pattern == pattern

    def test_misplaced_wildcard(self, make_behavior):
        """A match-all entry before the default is rejected"""
        raw = {
            "only": {
                "origin": "o",
                "behaviors": [
                    make_behavior(path="/a*"),
                    make_behavior(),
                    make_behavior(path="/b*"),
                ],
                "default": make_behavior(),
            }
        }

        with pytest.raises(ConfigurationError) as exc_info:
            compile_configuration(raw)

        error = _single(exc_info.value.errors, MisplacedWildcardBehaviorError)
        assert error.backend_id == "only"
        assert error.index == 1

    def test_unresolved_proxy_target(self, raw_config):
        raw_config["dashboard"]["behaviors"][1]["proxy"] = "nowhere"

        with pytest.raises(ConfigurationError) as exc_info:
            compile_configuration(raw_config)

        error = _single(exc_info.value.errors, UnresolvedProxyTargetError)
        assert error.backend_id == "dashboard"
        assert error.target == "nowhere"

    def test_proxy_to_invalid_backend_not_unresolved(self, raw_config):
        """A target that exists but fails to parse is reported once"""
        del raw_config["s3_proxy"]["origin"]

        with pytest.raises(ConfigurationError) as exc_info:
            compile_configuration(raw_config)

        errors = exc_info.value.errors
        assert len(errors) == 1
        assert isinstance(errors[0], InvalidBackendError)
        assert errors[0].backend_id == "s3_proxy"
        assert "origin" in errors[0].reason

    def test_no_primary(self, raw_config):
        del raw_config["dashboard"]["primary"]

        with pytest.raises(ConfigurationError) as exc_info:
            compile_configuration(raw_config)

        _single(exc_info.value.errors, NoDefaultBackendError)

    def test_several_primaries(self, raw_config):
        raw_config["s3_proxy"]["primary"] = True

        with pytest.raises(ConfigurationError) as exc_info:
            compile_configuration(raw_config)

        error = _single(exc_info.value.errors, NoDefaultBackendError)
        assert error.backend_ids == ("dashboard", "s3_proxy")

    def test_empty_configuration(self):
        with pytest.raises(ConfigurationError) as exc_info:
            compile_configuration({})

        _single(exc_info.value.errors, NoDefaultBackendError)

    def test_non_mapping(self):
        with pytest.raises(ConfigurationError) as exc_info:
            compile_configuration(["dashboard"])

        _single(exc_info.value.errors, InvalidBackendError)

    def test_missing_default(self, raw_config):
        del raw_config["dashboard"]["default"]

        with pytest.raises(ConfigurationError) as exc_info:
            compile_configuration(raw_config)

        error = _single(exc_info.value.errors, InvalidBackendError)
        assert "default" in error.reason

    def test_all_errors_reported(self, raw_config, make_behavior):
        """Every problem is collected in one ConfigurationError"""
        del raw_config["dashboard"]["primary"]
        raw_config["dashboard"]["behaviors"][0]["path"] = "hello*"
        raw_config["dashboard"]["behaviors"][1]["proxy"] = "nowhere"
        raw_config["s3_proxy"]["behaviors"].insert(0, make_behavior())

        with pytest.raises(ConfigurationError) as exc_info:
            compile_configuration(raw_config)

        kinds = sorted(type(e).__name__ for e in exc_info.value.errors)
        assert kinds == [
            "InvalidPatternError",
            "MisplacedWildcardBehaviorError",
            "NoDefaultBackendError",
            "UnresolvedProxyTargetError",
        ]
        assert "4 error(s)" in str(exc_info.value)
