"""Tests for requirement parsing and submission payload handling."""

import pytest

from depresolver.errors import ValidationError
from depresolver.models import Requirement, ResolutionRequest
from depresolver.requirements import build_request, parse_requirement_string, parse_requirements_text


class TestParseRequirementString:
    """Tests for single requirement strings."""

    def test_exact_pin(self):
        req = parse_requirement_string("django==3.2.5")
        assert req.name == "django"
        assert req.operator == "=="
        assert req.version == "3.2.5"
        assert req.fixed is True
        assert req.original_spec == "django==3.2.5"

    def test_first_comparison_kept(self):
        req = parse_requirement_string("numpy>=1.19.0,<2.0.0")
        assert req.operator == ">="
        assert req.version == "1.19.0"
        assert req.fixed is False
        assert req.original_spec == "numpy>=1.19.0,<2.0.0"

    def test_bare_name(self):
        req = parse_requirement_string("  requests  ")
        assert req.name == "requests"
        assert req.operator == ""
        assert req.version is None
        assert req.original_spec == "requests"

    def test_extras_and_marker_carried_separately(self):
        req = parse_requirement_string("requests[security,socks]>=2.0; python_version<'3.8'")
        assert req.name == "requests"
        assert req.operator == ">="
        assert req.version == "2.0"
        assert req.extras == ["security", "socks"]
        assert req.marker == 'python_version < "3.8"'

    def test_first_comparison_is_by_position(self):
        req = parse_requirement_string("numpy<2.0.0,>=1.19.0")
        assert req.operator == "<"
        assert req.version == "2.0.0"

    def test_direct_reference_has_no_operator(self):
        req = parse_requirement_string("mypkg @ https://example.com/mypkg-1.0.tar.gz")
        assert req.name == "mypkg"
        assert req.operator == ""
        assert req.version is None

    def test_arbitrary_equality_not_read_as_exact(self):
        req = parse_requirement_string("legacy===1.0-custom")
        assert req.operator == "==="
        assert req.version == "1.0-custom"
        assert req.fixed is False

    def test_compatible_release(self):
        req = parse_requirement_string("pytest ~= 7.4")
        assert req.operator == "~="
        assert req.version == "7.4"

    @pytest.mark.parametrize("bad", ["", ">=1.0", "foo bar", "-e ."])
    def test_invalid_strings_rejected(self, bad):
        with pytest.raises(ValidationError):
            parse_requirement_string(bad)


class TestRequirementModel:
    """Tests for Requirement validation."""

    def test_fixed_derived_from_operator(self):
        req = Requirement.from_dict({"name": "flask", "operator": ">=", "version": "2.0", "fixed": True})
        assert req.fixed is False

    def test_operator_requires_version(self):
        with pytest.raises(ValidationError, match="requires a version"):
            Requirement(name="flask", operator=">=")

    def test_unknown_operator_rejected(self):
        with pytest.raises(ValidationError, match="Unsupported operator"):
            Requirement(name="flask", operator="=>", version="1.0")

    def test_key_is_case_folded(self):
        assert Requirement(name="Django").key == "django"

    def test_package_names_distinct_first_seen(self):
        request = ResolutionRequest(requirements=[
            Requirement(name="Requests", operator=">=", version="2.0"),
            Requirement(name="flask"),
            Requirement(name="requests", operator="==", version="2.25.0"),
        ])
        assert request.package_names == ["Requests", "flask"]


class TestParseRequirementsText:
    """Tests for requirements file bodies."""

    def test_skips_comments_options_and_blank_lines(self):
        text = "\n".join([
            "# pinned deps",
            "-r base.txt",
            "--index-url https://example.com/simple",
            "",
            "requests>=2.28.0  # http",
            "django==3.2.5",
        ])
        reqs = parse_requirements_text(text)
        assert [r.name for r in reqs] == ["requests", "django"]
        assert reqs[0].original_spec == "requests>=2.28.0"

    def test_tab_before_inline_comment(self):
        reqs = parse_requirements_text("numpy>=1.0\t# pinned for CI\n")
        assert len(reqs) == 1
        assert reqs[0].name == "numpy"
        assert reqs[0].version == "1.0"

    def test_continuation_with_hash_option(self):
        reqs = parse_requirements_text("numpy==1.0 \\\n    --hash=sha256:abcdef\nflask\n")
        assert [r.name for r in reqs] == ["numpy", "flask"]
        assert reqs[0].original_spec == "numpy==1.0"
        assert reqs[0].fixed is True

    def test_hash_fragment_in_url_is_not_a_comment(self):
        reqs = parse_requirements_text("mypkg @ https://example.com/mypkg-1.0.tar.gz#sha256=abc\n")
        assert reqs[0].name == "mypkg"

    def test_includes_are_not_followed(self):
        reqs = parse_requirements_text("-r /etc/passwd\n-c constraints.txt\nrequests\n")
        assert [r.name for r in reqs] == ["requests"]

    def test_invalid_line_rejected(self):
        with pytest.raises(ValidationError, match="Invalid requirement format"):
            parse_requirements_text("requests\nnot a requirement\n")


class TestBuildRequest:
    """Tests for submission payload validation."""

    def test_strings_objects_and_requirements_txt(self):
        request = build_request({
            "requirements": ["requests>=2.28.0", {"name": "django", "operator": "==", "version": "3.2.5"}],
            "requirements_txt": "flask\n",
            "python_version": "3.11",
        })
        assert [r.name for r in request.requirements] == ["requests", "django", "flask"]
        assert request.requirements[1].fixed is True
        assert request.python_version == "3.11"

    def test_defaults(self):
        request = build_request({"requirements": ["requests"]})
        assert request.python_version == "3.9"
        assert request.allow_prereleases is False
        assert request.prefer_stable is True
        assert request.exclude_deprecated is True
        assert request.suggest_alternatives is True

    def test_empty_list_rejected(self):
        with pytest.raises(ValidationError, match="At least one requirement is required"):
            build_request({"requirements": []})

    def test_comment_only_requirements_txt_rejected(self):
        with pytest.raises(ValidationError, match="At least one requirement is required"):
            build_request({"requirements_txt": "# nothing here\n"})

    def test_missing_requirements_rejected(self):
        with pytest.raises(ValidationError, match="Invalid input"):
            build_request({"python_version": "3.11"})

    def test_wrong_type_names_path(self):
        with pytest.raises(ValidationError, match="Invalid input at 'requirements'"):
            build_request({"requirements": "requests"})

    def test_non_object_body_rejected(self):
        with pytest.raises(ValidationError, match="JSON object"):
            build_request(["requests"])
