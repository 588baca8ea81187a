"""
Symbol table tests.
"""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
from ibcm.errors import AssemblerError, DuplicateLabel
from ibcm.symbols import SymbolTable


class TestSymbolTable:

    def test_define_and_resolve(self):
        table = SymbolTable()
        table.define('loop', 3, line_num=7)
        assert table.resolve('loop') == 3
        assert table.line_of('loop') == 7
        assert 'loop' in table
        assert len(table) == 1

    def test_unknown_label(self):
        table = SymbolTable()
        assert table.resolve('nope') is None
        assert 'nope' not in table

    def test_duplicate(self):
        table = SymbolTable()
        table.define('x', 0, line_num=1)
        with pytest.raises(DuplicateLabel, match="first defined on line 1") as info:
            table.define('x', 5, line_num=4)
        assert isinstance(info.value, AssemblerError)
        assert info.value.line_num == 4
        assert table.resolve('x') == 0

    def test_exact_comparison(self):
        table = SymbolTable()
        table.define('Loop', 1)
        table.define('loop', 2)
        assert table.resolve('Loop') == 1
        assert table.resolve('loop') == 2

    def test_iteration_order(self):
        table = SymbolTable()
        for i, name in enumerate(['c', 'a', 'b']):
            table.define(name, i)
        assert list(table) == ['c', 'a', 'b']
        assert table.as_dict() == {'c': 0, 'a': 1, 'b': 2}
        assert dict(table.items()) == table.as_dict()
