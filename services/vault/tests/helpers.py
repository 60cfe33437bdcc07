"""Addresses and amounts shared across tests."""

WETH = "0xweth"
USDC = "0xusdc"
ALICE = "0xalice"
BOB = "0xbob"
CUSTODY = "0xcustody"

ONE_WETH = 10**18
ONE_USDC = 10**6
WETH_PRICE = 2000 * 10**8  # $2000, 8 decimals
USDC_PRICE = 1 * 10**8
