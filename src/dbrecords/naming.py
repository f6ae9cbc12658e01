"""Naming convention between record fields and table columns."""

__all__ = ['to_snake_case']


def to_snake_case(name: str) -> str:
    """Convert an upper-camel-case name into a snake_case column name.

    The first character is lower-cased without a separator; every later
    upper-case character becomes ``_`` plus its lower-case form. Acronyms get
    no special treatment.

    >>> to_snake_case('UserId')
    'user_id'
    >>> to_snake_case('Id')
    'id'
    >>> to_snake_case('HTTPCode')
    'h_t_t_p_code'
    >>> to_snake_case('')
    ''
    """
    chars = []
    for i, c in enumerate(name):
        if c.isupper():
            if i > 0:
                chars.append('_')
            chars.append(c.lower())
        else:
            chars.append(c)
    return ''.join(chars)


if __name__ == '__main__':
    __import__('doctest').testmod(optionflags=4 | 8 | 32)
