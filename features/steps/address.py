from behave import *

from datanft_sdk.address import Address

# Use regular expressions
use_step_matcher("re")


@when("I parse the address")
def when_parse_address(context):
    try:
        context.output = Address.from_str(context.input)
    except Exception as e:
        context.output = e


@when("I convert the address to bech32")
def when_address_to_bech32(context):
    context.output = context.input.bech32()


@when("I convert the address to hex")
def when_address_to_hex(context):
    context.output = context.input.hex()


@when("I check if the address is a smart contract")
def when_address_is_smart_contract(context):
    context.output = context.input.is_smart_contract()


@then("I should fail to parse the address")
def then_fail_address(context):
    assert isinstance(context.output, Exception)
