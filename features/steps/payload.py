import typing

from behave import use_step_matcher, when

from datanft_sdk.address import Address
from datanft_sdk.codec import TopEncoder
from datanft_sdk.transactions import ContractCallPayload, TransactionArgument

# Use regular expressions
use_step_matcher("re")


def parse_arguments(arguments: str) -> typing.List[TransactionArgument]:
    """Parse ``type:value`` pairs separated by commas, e.g. ``u64:42,bool:true``."""
    if len(arguments) == 0:
        return []
    parsed = []
    for argument in arguments.split(","):
        arg_type, value = argument.split(":", 1)
        if arg_type == "bool":
            parsed.append(TransactionArgument(value == "true", TopEncoder.bool))
        elif arg_type == "u64":
            parsed.append(TransactionArgument(int(value), TopEncoder.u64))
        elif arg_type == "biguint":
            parsed.append(TransactionArgument(int(value), TopEncoder.biguint))
        elif arg_type == "string":
            parsed.append(TransactionArgument(value, TopEncoder.str))
        elif arg_type == "address":
            parsed.append(TransactionArgument(Address.from_str(value), TopEncoder.struct))
        else:
            raise Exception("Unrecognized argument type")
    return parsed


@when(r"I build a call to (?P<function>\w+) with \[(?P<arguments>.*)]")
def when_build_call(context: typing.Any, function: str, arguments: str):
    payload = ContractCallPayload.natural(function, parse_arguments(arguments))
    context.output = payload.encode().decode()


@when(
    r"I build a transfer of (?P<amount>\d+) (?P<token>\S+) calling (?P<function>\w+) with \[(?P<arguments>.*)]"
)
def when_build_transfer(
    context: typing.Any, amount: str, token: str, function: str, arguments: str
):
    payload = ContractCallPayload.esdt_transfer(
        token, int(amount), function, parse_arguments(arguments)
    )
    context.output = payload.encode().decode()
