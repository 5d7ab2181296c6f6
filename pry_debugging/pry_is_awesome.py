#!/usr/bin/env python3
"""
Demo method: stop in the middle of a function and look around.

Run it with ``python -m pry_debugging.pry_is_awesome`` and, at the ``pry>``
prompt, try ``inside_the_method`` (defined) and
``this_variable_hasnt_been_interpreted_yet`` (not yet defined).  ``exit``
resumes the method.
"""

import pry_debugging


def prying_into_the_method():
    inside_the_method = "We're inside the method"
    print(inside_the_method)
    print("We're about to stop because of pry!")
    pry_debugging.pry.set_trace()
    this_variable_hasnt_been_interpreted_yet = "The program froze before it could read me!"
    print(this_variable_hasnt_been_interpreted_yet)


if __name__ == "__main__":
    prying_into_the_method()
