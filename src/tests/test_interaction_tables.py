"""DataFrame views over detected interactions."""
import pytest

from analysis.base import HydrogenBond, Interaction
from analysis.structure import Atom
from analysis.tables import INTERACTION_COLUMNS, interactions_to_frame, summary_frame


def _atom(chain, seq, res, name, pos):
    return Atom(chain_id=chain, residue_seq=seq, residue_name=res, atom_name=name,
                element=name[0], position=pos)


@pytest.fixture
def interactions():
    n = _atom('A', 1, 'SER', 'N', (0.0, 0.0, 0.0))
    o = _atom('A', 4, 'SER', 'O', (2.7, 0.0, 0.0))
    nz = _atom('A', 7, 'LYS', 'NZ', (10.0, 0.0, 0.0))
    od = _atom('B', 2, 'ASP', 'OD1', (13.5, 0.0, 0.0))
    return [
        HydrogenBond(id='hydrogen-bond-1', kind='hydrogen-bond', participants=(n, o), distance=2.7,
                     strength='strong', endpoints=(n.position, o.position), angle=175.0,
                     residues=('SER1', 'SER4'), chains=('A', 'A'), donor=n, acceptor=o,
                     bond_type='backbone-backbone'),
        Interaction(id='salt-bridge-1', kind='salt-bridge', participants=(nz, od), distance=3.5,
                    strength='moderate', endpoints=(nz.position, od.position),
                    residues=('LYS7', 'ASP2'), chains=('A', 'B')),
    ]


def test_frame_has_one_row_per_interaction(interactions):
    df = interactions_to_frame(interactions)
    assert list(df.columns) == INTERACTION_COLUMNS
    assert df['ID'].tolist() == ['hydrogen-bond-1', 'salt-bridge-1']
    assert df['Interaction_Type'].tolist() == ['Hydrogen Bonds', 'Salt Bridges']
    assert df.loc[0, 'Bond_Type'] == 'backbone-backbone'
    assert df.loc[1, 'Bond_Type'] == ''
    assert df.loc[1, 'Chain_2'] == 'B'
    assert df.loc[0, 'Atom_1'] == 'A:SER1:N'


def test_empty_frame_keeps_columns():
    df = interactions_to_frame([])
    assert df.empty
    assert list(df.columns) == INTERACTION_COLUMNS


def test_summary_counts_every_type(interactions):
    summary = summary_frame(interactions).set_index('Interaction_Type')
    assert len(summary) == 5
    assert summary.loc['Hydrogen Bonds', 'strong'] == 1
    assert summary.loc['Salt Bridges', 'moderate'] == 1
    assert summary.loc['Salt Bridges', 'Total'] == 1
    assert summary['Total'].sum() == 2


def test_summary_of_nothing_is_all_zero():
    summary = summary_frame([])
    assert len(summary) == 5
    assert summary['Total'].sum() == 0
