"""Archer DAO private transaction relay.

- Fetch tip quotes for priority inclusion

- Submit signed transactions bypassing the public mempool

See https://archerdao.io/
"""
