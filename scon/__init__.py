"""
Parser for SCON literals: values such as `true`, `-5`, `'c'`, `"hi"`,
`0xA1B2`, `[1, 2, 3]`, `(1, 2)`, `Foo(1, 2)` and `{a: 1, b: 2}`.

```python
from scon import parse_value, Tuple, UInt

assert parse_value("Foo(1, 2)") == Tuple("Foo", [UInt(1), UInt(2)])
```
"""

from scon.errors import ErrorKind, ParseError
from scon.parser import parse_value, unescape
from scon.value import (
    Bool, Bytes, Char, Int, Map, Seq, String, Tuple, UInt, Unit, Value,
)
