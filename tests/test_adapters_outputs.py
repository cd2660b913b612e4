"""Tests for snapshot sources, report outputs and the operator CLI."""

import csv
import json
import os
import sys
import fitz  # PyMuPDF
import pytest
import requests

# Add project root to path
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, PROJECT_ROOT)

from wagers import process_pool
from wagers.adapters import http_adapter
from wagers.adapters.file_adapter import FileSnapshotSource
from wagers.adapters.http_adapter import HttpSnapshotSource
from wagers.core import pool as ops
from wagers.core.errors import MissingExternalData, StageOrderViolation
from wagers.core.identity import entry_key
from wagers.core.output_generator import (
    generate_payouts_csv, generate_results_report, payout_rows,
)
from wagers.core.pdf_generator import generate_results_pdf
from wagers.core.presets import MINI_LEAGUES
from wagers.core.store import PoolStore


def owner(division, league, name, **weeks):
    return {'division': division, 'leagueName': league, 'ownerName': name,
            'weekly': {k.lstrip('w'): v for k, v in weeks.items()}}


OWNERS = [
    owner('A', 'L1', 'Alice', w1=100, w15=130),
    owner('A', 'L1', 'Bob', w1=90, w15=140),
    owner('A', 'L2', 'Cara', w1=80, w15=110),
    owner('B', 'L3', 'Dan', w1=120, w15=90),
]
SNAPSHOT = {'2025': {'mini_game': {'owners': OWNERS}}}

ALICE = entry_key('A', 'L1', 'Alice')
DAN = entry_key('B', 'L3', 'Dan')


@pytest.fixture
def snapshot_file(tmp_path):
    path = tmp_path / 'leaderboards_2025.json'
    path.write_text(json.dumps(SNAPSHOT))
    return str(path)


@pytest.fixture
def resolved_doc():
    doc = ops.new_document(2025, MINI_LEAGUES)
    ops.import_eligibility(doc, MINI_LEAGUES, OWNERS)
    ops.set_decision(doc, MINI_LEAGUES, 'week15', ALICE, 'wager')
    ops.set_decision(doc, MINI_LEAGUES, 'week15', DAN, 'wager')
    ops.resolve_stage(doc, MINI_LEAGUES, 'week15', OWNERS)
    return doc


# ─── File source ────────────────────────────────────────────────────

class TestFileSource:
    def test_reads_snapshot(self, snapshot_file):
        source = FileSnapshotSource(snapshot_file)
        assert source.fetch(2025) == SNAPSHOT
        assert source.source_info['url'] == os.path.abspath(snapshot_file)
        assert source.source_info['fetched_at']

    def test_missing_file(self, tmp_path):
        with pytest.raises(MissingExternalData):
            FileSnapshotSource(str(tmp_path / 'nope.json')).fetch(2025)

    def test_invalid_json(self, tmp_path):
        path = tmp_path / 'broken.json'
        path.write_text('{"2025": ')
        with pytest.raises(MissingExternalData):
            FileSnapshotSource(str(path)).fetch(2025)


# ─── HTTP source ────────────────────────────────────────────────────

class FakeResponse:
    def __init__(self, status_code, payload=None, headers=None):
        self.status_code = status_code
        self._payload = payload
        self.headers = headers or {}
        self.content = b'{}' if payload is not None else b'<html>'

    def json(self):
        if self._payload is None:
            raise ValueError('No JSON object could be decoded')
        return self._payload


class TestHttpSource:
    def make(self, monkeypatch, responses):
        calls = []
        sleeps = []

        def fake_get(url, timeout=None, headers=None):
            calls.append((url, timeout))
            item = responses.pop(0)
            if isinstance(item, Exception):
                raise item
            return item

        monkeypatch.setattr(http_adapter.requests, 'get', fake_get)
        source = HttpSnapshotSource('https://example.test/lb_{season}.json',
                                    timeout=5, sleep=sleeps.append)
        return source, calls, sleeps

    def test_success_records_etag(self, monkeypatch):
        source, calls, sleeps = self.make(
            monkeypatch, [FakeResponse(200, SNAPSHOT, {'ETag': '"v1"'})])
        assert source.fetch(2025) == SNAPSHOT
        assert calls == [('https://example.test/lb_2025.json', 5)]
        assert sleeps == []
        assert source.source_info['etag'] == '"v1"'
        assert source.source_info['url'] == 'https://example.test/lb_2025.json'

    def test_retries_transient_failures(self, monkeypatch):
        source, calls, sleeps = self.make(monkeypatch, [
            FakeResponse(503),
            requests.ConnectionError('reset by peer'),
            FakeResponse(200, SNAPSHOT),
        ])
        assert source.fetch(2025) == SNAPSHOT
        assert len(calls) == 3
        assert len(sleeps) == 2
        assert all(0 < s <= 6 for s in sleeps)

    def test_gives_up_after_max_attempts(self, monkeypatch):
        source, calls, sleeps = self.make(
            monkeypatch, [requests.Timeout(), requests.Timeout(), requests.Timeout()])
        with pytest.raises(MissingExternalData):
            source.fetch(2025)
        assert len(calls) == 3
        assert len(sleeps) == 2

    def test_client_error_not_retried(self, monkeypatch):
        source, calls, _ = self.make(monkeypatch, [FakeResponse(404)])
        with pytest.raises(MissingExternalData):
            source.fetch(2025)
        assert len(calls) == 1

    def test_non_json_body(self, monkeypatch):
        source, _, _ = self.make(monkeypatch, [FakeResponse(200)])
        with pytest.raises(MissingExternalData):
            source.fetch(2025)


# ─── Outputs ────────────────────────────────────────────────────────

class TestOutputs:
    def test_text_report(self, resolved_doc, tmp_path):
        path = str(tmp_path / 'results.txt')
        generate_results_report(resolved_doc, MINI_LEAGUES, 'week15', path)
        text = open(path).read()
        assert 'Mini Leagues 2025: Week 15 Wagers' in text
        assert 'Pot: wager' in text
        assert '$120.00 -> Alice (A / L1)  130.00 pts' in text
        assert 'A: 1st Alice (A / L1)  130.00 pts  +$30.00' in text
        assert 'B: 1st Dan (B / L3)  90.00 pts  +$30.00' in text
        assert 'Overall: 1st Alice (A / L1)  130.00 pts  +$100.00' in text

    def test_payouts_csv(self, resolved_doc, tmp_path):
        path = str(tmp_path / 'payouts.csv')
        generate_payouts_csv(resolved_doc, MINI_LEAGUES, 'week15', path)
        with open(path, newline='') as f:
            rows = list(csv.DictReader(f))
        assert len(rows) == 4
        pot = next(r for r in rows if r['kind'] == 'pot')
        assert pot['category'] == 'wager'
        assert pot['owner_name'] == 'Alice'
        assert (pot['entrants'], pot['pool'], pot['total']) == ('2', '60.00', '120.00')
        assert pot['status'] == 'paid'
        awards = [r for r in rows if r['kind'] == 'award']
        assert {(r['category'], r['group'], r['owner_name']) for r in awards} == {
            ('division', 'A', 'Alice'), ('division', 'B', 'Dan'),
            ('championship', 'all', 'Alice')}

    def test_unclaimed_status(self, tmp_path):
        doc = ops.new_document(2025, MINI_LEAGUES)
        ops.import_eligibility(doc, MINI_LEAGUES, OWNERS)
        ops.resolve_stage(doc, MINI_LEAGUES, 'week15', OWNERS)
        pot = next(r for r in payout_rows(doc, MINI_LEAGUES, 'week15') if r['kind'] == 'pot')
        assert pot['status'] == 'unclaimed'
        assert pot['total'] == '60.00'

    def test_pdf(self, resolved_doc, tmp_path):
        path = str(tmp_path / 'results.pdf')
        generate_results_pdf(resolved_doc, MINI_LEAGUES, 'week15', path)
        pdf = fitz.open(path)
        assert pdf.page_count >= 1
        text = ''.join(page.get_text() for page in pdf)
        pdf.close()
        assert 'Alice' in text
        assert 'Dan' in text

    def test_unresolved_stage(self, tmp_path):
        doc = ops.new_document(2025, MINI_LEAGUES)
        ops.import_eligibility(doc, MINI_LEAGUES, OWNERS)
        with pytest.raises(StageOrderViolation):
            generate_results_report(doc, MINI_LEAGUES, 'week15', str(tmp_path / 'x.txt'))


# ─── CLI ────────────────────────────────────────────────────────────

class TestCli:
    def base(self, tmp_path):
        return ['--db', str(tmp_path / 'pools.db'), '--season', '2025',
                '--pool', 'mini_leagues']

    def test_full_run(self, tmp_path, snapshot_file, capsys):
        base = self.base(tmp_path)
        assert process_pool.run(base + ['import', '--snapshot', snapshot_file]) == 0
        assert process_pool.run(base + ['decide', '--division', 'A', '--league', 'L1',
                                        '--owner', 'Alice', '--choice', 'wager']) == 0
        assert process_pool.run(base + ['decide', '--key', DAN, '--choice', 'wager']) == 0
        assert process_pool.run(base + ['resolve', '--snapshot', snapshot_file]) == 0
        assert process_pool.run(base + ['status']) == 0
        out_dir = str(tmp_path / 'out')
        assert process_pool.run(base + ['report', '--output', out_dir]) == 0

        out = capsys.readouterr().out
        assert 'Imported 3 entrants into week15' in out
        assert 'week15: resolved, 3 entrants, 2 decided' in out
        for suffix in ('_results.txt', '_payouts.csv', '_results.pdf'):
            assert os.path.exists(os.path.join(out_dir, f'mini_leagues_2025_week15{suffix}'))

        doc = PoolStore(str(tmp_path / 'pools.db')).load(2025, 'mini_leagues')
        assert doc.version == 4
        assert doc.stages['week15'].result.pots['wager']['all'].winner_key == ALICE

    def test_rules_command(self, tmp_path, snapshot_file, capsys):
        base = self.base(tmp_path)
        process_pool.run(base + ['import', '--snapshot', snapshot_file])
        rules_path = tmp_path / 'bonus.json'
        rules_path.write_text(json.dumps({'wager_bonus': 0}))
        assert process_pool.run(base + ['rules', '--set', str(rules_path)]) == 0
        capsys.readouterr()
        assert process_pool.run(base + ['rules']) == 0
        shown = json.loads(capsys.readouterr().out)
        assert shown['wager_bonus'] == 0

    def test_error_exits_2(self, tmp_path, snapshot_file, capsys):
        base = self.base(tmp_path)
        process_pool.run(base + ['import', '--snapshot', snapshot_file])
        with pytest.raises(SystemExit) as exc:
            process_pool.main(base + ['decide', '--key', ALICE, '--choice', 'maybe'])
        assert exc.value.code == 2
        assert 'Error:' in capsys.readouterr().err
        doc = PoolStore(str(tmp_path / 'pools.db')).load(2025, 'mini_leagues')
        assert doc.version == 1
        assert doc.stages['week15'].decisions == {}

    def test_missing_snapshot_exits_2(self, tmp_path, capsys):
        with pytest.raises(SystemExit) as exc:
            process_pool.main(self.base(tmp_path) + [
                'import', '--snapshot', str(tmp_path / 'missing.json')])
        assert exc.value.code == 2

    def test_reset(self, tmp_path, snapshot_file):
        base = self.base(tmp_path)
        process_pool.run(base + ['import', '--snapshot', snapshot_file])
        assert process_pool.run(base + ['reset']) == 1
        assert process_pool.run(base + ['reset', '--yes']) == 0
        doc = PoolStore(str(tmp_path / 'pools.db')).load(2025, 'mini_leagues')
        assert doc.version == 0 and doc.stages == {}

    def test_empire_command(self, tmp_path, capsys):
        path = tmp_path / 'dynasty.json'
        path.write_text(json.dumps({'2025': {'dynasty': {'owners': [
            owner('A', 'L1', 'Alice', w1=100, w17=150),
            owner('A', 'L1', 'Bob', w1=90, w17=120),
        ]}}}))
        base = ['--db', str(tmp_path / 'pools.db'), '--season', '2025', '--pool', 'dynasty']
        assert process_pool.run(base + ['import', '--snapshot', str(path)]) == 0
        assert process_pool.run(base + ['empire', '--division', 'A', '--league', 'L1']) == 0
        assert process_pool.run(base + ['resolve', '--snapshot', str(path)]) == 0
        assert 'empire bonus on for A / L1' in capsys.readouterr().out

        doc = PoolStore(str(tmp_path / 'pools.db')).load(2025, 'dynasty')
        place = doc.stages['week17'].result.awards['league']['A|||L1'][0]
        assert (place.owner_name, place.empire_bonus) == ('Alice', 225)

    def test_rules_file_note_for_stored_stages(self, tmp_path, snapshot_file, capsys):
        base = self.base(tmp_path)
        process_pool.run(base + ['import', '--snapshot', snapshot_file])
        rules_path = tmp_path / 'season.json'
        rules_path.write_text(json.dumps({'week15': {'credit': 10}}))
        capsys.readouterr()
        process_pool.run(base[:-2] + ['--pool', 'mini_leagues', '--rules', str(rules_path),
                                      'status'])
        assert "use 'rules --set'" in capsys.readouterr().out
