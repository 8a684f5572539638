"""
Labeled property graph extraction for source code.

Turns a body of source code, as exposed through a semantic-model
provider, into a typed, deduplicated labeled property graph with
structural, logical and behavioral edges plus software metrics.
"""

__version__ = "1.0.0"
__author__ = "codelpg"
