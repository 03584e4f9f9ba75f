"""Delta-computation core.

Pure, synchronous functions and one explicit state object. Nothing in this
package performs I/O; the transport, configuration and logging layers call
into it with already-decoded JSON values.
"""
