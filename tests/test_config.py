import json

import pytest

from ops_insight.config.business import BusinessConfig, ProfitCenterGoal
from ops_insight.config.loader import config_from_dict, load_business_config
from ops_insight.errors import InvalidConfiguration


def test_default_config_is_valid():
    config = BusinessConfig()
    config.validate()
    assert config.default_lead_time == 3.0
    assert config.abc_class_a_threshold == 70.0
    assert len(config.profit_center_goals) == 3


def test_shipped_json_matches_defaults():
    assert load_business_config() == BusinessConfig()


class TestZScore:
    def test_table_lookup(self) -> None:
        config = BusinessConfig()
        assert config.z_score(90) == 1.282
        assert config.z_score(95) == 1.645
        assert config.z_score(97.0) == 1.881
        assert config.z_score(99) == 2.326

    def test_unsupported_level(self) -> None:
        with pytest.raises(InvalidConfiguration, match="80"):
            BusinessConfig().z_score(80)

    def test_is_a_value_error(self) -> None:
        with pytest.raises(ValueError):
            BusinessConfig().z_score(50)


class TestImmutability:
    def test_replace_returns_copy(self) -> None:
        base = BusinessConfig()
        changed = base.replace(default_lead_time=4)
        assert changed.default_lead_time == 4
        assert base.default_lead_time == 3.0

    def test_nested_tables_are_read_only(self) -> None:
        config = BusinessConfig(channel_fee_rates={"coupang": 0.1})
        with pytest.raises(TypeError):
            config.channel_fee_rates["coupang"] = 0.5  # type: ignore[index]
        with pytest.raises(TypeError):
            config.service_level_z[80] = 0.84  # type: ignore[index]


class TestValidation:
    @pytest.mark.parametrize(
        "changes",
        [
            {"default_lead_time": 0},
            {"lead_time_std_dev": -1},
            {"holding_cost_rate": -0.1},
            {"abc_class_a_threshold": 95.0},
            {"xyz_class_x_threshold": 2.0},
            {"freshness_weights": {"recency": -1.0}},
            {"freshness_weights": {"colour": 1.0}},
            {"profit_metric_weights": {"raw_material": 0.0}},
            {"anomaly_severity_medium_pct": 40.0},
            {"channel_fee_rates": {"coupang": 1.2}},
            {"service_level_z": {}},
            {"freshness_grade_bands": (("safe", 20.0), ("good", 60.0), ("caution", 80.0))},
            {"freshness_grade_bands": (("safe", 80.0), ("good", 80.0))},
            {"freshness_grade_bands": ()},
            {"stock_days_warning": 2.0},
        ],
    )
    def test_rejects(self, changes) -> None:
        with pytest.raises(InvalidConfiguration):
            BusinessConfig().replace(**changes).validate()

    def test_custom_grade_bands_accepted(self) -> None:
        bands = (("fresh", 90.0), ("ok", 50.0))
        BusinessConfig().replace(freshness_grade_bands=bands).validate()


class TestLoader:
    def test_overrides_applied(self) -> None:
        config = load_business_config(overrides={"default_lead_time": 4, "order_cost": 30000})
        assert config.default_lead_time == 4
        assert config.order_cost == 30000

    def test_unknown_key(self) -> None:
        with pytest.raises(InvalidConfiguration, match="leadtime"):
            config_from_dict({"leadtime": 4})

    def test_string_service_levels_become_numbers(self) -> None:
        config = config_from_dict({"service_level_z": {"85": 1.036, "95": 1.645}})
        assert config.z_score(85) == 1.036

    def test_goals_from_json(self, tmp_path) -> None:
        path = tmp_path / "business.json"
        path.write_text(
            json.dumps(
                {
                    "profit_center_goals": [
                        {
                            "revenue_bracket": 0,
                            "targets": {
                                "raw_material": 2,
                                "sub_material": 8,
                                "labor": 3,
                                "utilities": 20,
                                "waste": 40,
                            },
                        }
                    ]
                }
            )
        )
        config = load_business_config(str(path))
        assert len(config.profit_center_goals) == 1
        goal = config.profit_center_goals[0]
        assert isinstance(goal, ProfitCenterGoal)
        assert goal.targets.get("labor") == 3.0

    def test_malformed_goal(self) -> None:
        with pytest.raises(InvalidConfiguration):
            config_from_dict({"profit_center_goals": [{"targets": {}}]})
