"""
Taskcoin ledger core: coin balances, task escrow and the submission/withdrawal
state machines of the task marketplace.
"""
