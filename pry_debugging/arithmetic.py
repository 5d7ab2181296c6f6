"""
The teaching prop: a function whose only bug is a silent wrong answer.
"""


def plus_two(num):
    """Return *num* plus two."""
    return num + 2


def plus_two_unfixed(num):
    """The planted bug, kept for the lesson.

    The sum is computed and thrown away, so the caller gets *num* back
    unchanged.  No exception is raised, which is why you need to stop inside
    the function and look at ``num`` to find it.
    """
    num + 2
    return num
