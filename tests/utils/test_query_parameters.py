"""Unit tests for query parameter rendering."""

from c8y_client.api.models import AlarmSeverity
from c8y_client.utils.query_parameters import SeparatedQueryParameter, encode_query_params


class TestSeparatedQueryParameter:
    """Test comma separated parameter values."""

    def test_joins_with_commas(self) -> None:
        """Verify elements are joined in order."""
        assert str(SeparatedQueryParameter("MAJOR", "CRITICAL")) == "MAJOR,CRITICAL"

    def test_none_elements_dropped(self) -> None:
        """Verify None elements are skipped."""
        assert str(SeparatedQueryParameter(None, "a", None, "b")) == "a,b"

    def test_enum_and_bool_elements(self) -> None:
        """Verify enums render as values and booleans in lower case."""
        param = SeparatedQueryParameter(AlarmSeverity.MAJOR, True, 3)
        assert str(param) == "MAJOR,true,3"

    def test_of(self) -> None:
        """Verify construction from an iterable."""
        assert SeparatedQueryParameter.of(["1", "2"]) == SeparatedQueryParameter("1", "2")

    def test_truthiness(self) -> None:
        """Verify parameters without values are falsy."""
        assert not SeparatedQueryParameter()
        assert not SeparatedQueryParameter(None)
        assert SeparatedQueryParameter("")


class TestEncodeQueryParams:
    """Test rendering a parameter mapping."""

    def test_platform_conventions(self) -> None:
        """Verify None, booleans, lists and separated values."""
        pairs = encode_query_params(
            {
                "severity": SeparatedQueryParameter("MAJOR", "CRITICAL"),
                "resolved": False,
                "pageSize": 5,
                "source": None,
                "fragmentType": ["c8y_A", None, "c8y_B"],
                "status": SeparatedQueryParameter(None),
            },
        )
        assert pairs == [
            ("severity", "MAJOR,CRITICAL"),
            ("resolved", "false"),
            ("pageSize", "5"),
            ("fragmentType", "c8y_A"),
            ("fragmentType", "c8y_B"),
        ]

    def test_empty(self) -> None:
        """Verify an empty mapping renders nothing."""
        assert encode_query_params({}) == []
