"""Tests for the DataDash command-line interface."""
import pytest
import pandas as pd
import yaml
from typer.testing import CliRunner

from datadash.cli import app
from datadash.config import DataModel, JoinConfig, save_data_model

runner = CliRunner()


@pytest.fixture
def workbook(tmp_path):
    path = tmp_path / 'shop.xlsx'
    with pd.ExcelWriter(path) as writer:
        pd.DataFrame({'id': [1, 2], 'cust': ['A', 'B'], 'amt': [100, 50]}).to_excel(
            writer, sheet_name='Orders', index=False)
        pd.DataFrame({'cust': ['A'], 'tier': ['gold']}).to_excel(
            writer, sheet_name='Customers', index=False)
    return path


@pytest.fixture
def model_file(tmp_path):
    path = tmp_path / 'model.yaml'
    save_data_model(DataModel(base_table_id='Orders', joins=[
        JoinConfig(right_table_id='Customers', left_column='cust', right_column='cust'),
    ]), str(path))
    return path


class TestProfileCommand:

    def test_profile_csv(self, tmp_path):
        path = tmp_path / 'sales.csv'
        pd.DataFrame({'day': ['2024-01-01', '2024-01-02'], 'amount': [1.5, 2.5]}).to_csv(path, index=False)

        result = runner.invoke(app, ['profile', str(path)])

        assert result.exit_code == 0
        assert 'sales: 2 rows × 2 cols' in result.output
        assert 'Date column: day' in result.output
        assert 'amount [Number]' in result.output

    def test_profile_all_sheets(self, workbook):
        result = runner.invoke(app, ['profile', str(workbook)])
        assert result.exit_code == 0
        assert 'Orders: 2 rows' in result.output
        assert 'Customers: 1 rows' in result.output

    def test_missing_file(self, tmp_path):
        result = runner.invoke(app, ['profile', str(tmp_path / 'nope.csv')])
        assert result.exit_code == 2

    def test_unsupported_file(self, tmp_path):
        path = tmp_path / 'notes.txt'
        path.write_text('hello')
        result = runner.invoke(app, ['profile', str(path)])
        assert result.exit_code == 1


class TestSuggestCommand:

    def test_suggest_and_save(self, workbook, tmp_path):
        output = tmp_path / 'suggested.yaml'
        result = runner.invoke(app, ['suggest', str(workbook), '--base', 'Orders', '--output', str(output)])

        assert result.exit_code == 0
        assert 'Orders.cust -> Customers.cust (LEFT)' in result.output
        with open(output) as f:
            saved = yaml.safe_load(f)
        assert saved['base_table_id'] == 'Orders'
        assert saved['joins'][0]['right_table_id'] == 'Customers'

    def test_unknown_base(self, workbook):
        result = runner.invoke(app, ['suggest', str(workbook), '--base', 'Nope'])
        assert result.exit_code == 1


class TestJoinCommand:

    def test_join_and_export(self, workbook, model_file, tmp_path):
        output = tmp_path / 'unified.csv'
        result = runner.invoke(app, ['join', str(workbook), '--model', str(model_file), '-o', str(output)])

        assert result.exit_code == 0
        assert 'Model: Orders + 1 joins: 2 rows × 5 cols' in result.output
        df = pd.read_csv(output)
        assert list(df.columns) == ['id', 'cust', 'amt', 'Customers.cust', 'Customers.tier']

    def test_missing_model_file(self, workbook, tmp_path):
        result = runner.invoke(app, ['join', str(workbook), '--model', str(tmp_path / 'none.yaml')])
        assert result.exit_code == 2

    def test_strict_rejects_bad_model(self, workbook, tmp_path):
        path = tmp_path / 'bad.yaml'
        save_data_model(DataModel(base_table_id='Orders', joins=[
            JoinConfig(right_table_id='Ghost', left_column='cust', right_column='cust'),
        ]), str(path))

        lenient = runner.invoke(app, ['join', str(workbook), '--model', str(path)])
        strict = runner.invoke(app, ['join', str(workbook), '--model', str(path), '--strict'])

        assert lenient.exit_code == 0
        assert strict.exit_code == 1


class TestReportCommand:

    def test_report_first_sheet(self, workbook):
        result = runner.invoke(app, ['report', str(workbook)])
        assert result.exit_code == 0
        assert 'Quality report: Orders' in result.output
        assert '100.0% complete' in result.output

    def test_report_on_model(self, workbook, model_file):
        result = runner.invoke(app, ['report', str(workbook), '--model', str(model_file)])
        assert result.exit_code == 0
        assert 'Customers.tier' in result.output

    def test_unknown_sheet(self, workbook):
        result = runner.invoke(app, ['report', str(workbook), '--sheet', 'Nope'])
        assert result.exit_code == 1


def test_info():
    result = runner.invoke(app, ['info'])
    assert result.exit_code == 0
    assert 'DataDash' in result.output


class TestConfigOption:
    """The --config file feeds profiler, suggester and model settings to commands."""

    @pytest.fixture
    def catalog(self, tmp_path):
        path = tmp_path / 'catalog.xlsx'
        with pd.ExcelWriter(path) as writer:
            pd.DataFrame({'code': [1, 2], 'sku': [1, 2]}).to_excel(writer, sheet_name='Facts', index=False)
            pd.DataFrame({'code': list(range(20)), 'sku': list(range(19)) + [0]}).to_excel(
                writer, sheet_name='Items', index=False)
        return path

    def _config(self, tmp_path, data):
        path = tmp_path / 'datadash.yaml'
        with open(path, 'w') as f:
            yaml.dump(data, f)
        return path

    def test_best_policy_changes_suggestion(self, catalog, tmp_path):
        config = self._config(tmp_path, {'suggester': {'name_match_policy': 'best'}})

        default = runner.invoke(app, ['suggest', str(catalog), '--base', 'Facts'])
        best = runner.invoke(app, ['suggest', str(catalog), '--base', 'Facts', '--config', str(config)])

        assert default.exit_code == 0
        assert best.exit_code == 0
        assert 'Facts.sku -> Items.sku' in default.output
        assert 'Facts.code -> Items.code' in best.output

    def test_profiler_thresholds_applied(self, tmp_path):
        path = tmp_path / 'mixed.csv'
        pd.DataFrame({'v': ['1', '2', '3', 'x', 'y']}).to_csv(path, index=False)
        config = self._config(tmp_path, {'profiler': {'number_threshold': 0.5}})

        default = runner.invoke(app, ['profile', str(path)])
        tuned = runner.invoke(app, ['profile', str(path), '-c', str(config)])

        assert 'v [String]' in default.output
        assert 'v [Number]' in tuned.output

    def test_join_uses_config_model(self, workbook, tmp_path):
        config = self._config(tmp_path, {
            'model': {
                'base_table_id': 'Orders',
                'joins': [{'right_table_id': 'Customers', 'left_column': 'cust', 'right_column': 'cust'}],
            },
            'log_level': 'ERROR',
        })
        result = runner.invoke(app, ['join', str(workbook), '--config', str(config)])

        assert result.exit_code == 0
        assert 'Model: Orders + 1 joins' in result.output

    def test_join_without_any_model(self, workbook):
        result = runner.invoke(app, ['join', str(workbook)])
        assert result.exit_code == 2

    def test_missing_config_file(self, workbook, tmp_path):
        result = runner.invoke(app, ['profile', str(workbook), '--config', str(tmp_path / 'none.yaml')])
        assert result.exit_code == 2

    def test_invalid_config_file(self, workbook, tmp_path):
        config = self._config(tmp_path, {'suggester': {'name_match_policy': 'first'}})
        result = runner.invoke(app, ['profile', str(workbook), '--config', str(config)])
        assert result.exit_code == 1
