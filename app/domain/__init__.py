"""Pure rules of the rental request and contract workflow.

Nothing in here touches the database: services load the rows, hand plain
values to these functions and act on the answer.
"""
