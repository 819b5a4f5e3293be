import typing

from behave import then, use_step_matcher, when

from datanft_sdk.address import Address
from datanft_sdk.codec import Deserializer, Serializer, TopDecoder, TopEncoder

# Use regular expressions
use_step_matcher("re")


@when(r"I serialize as (?P<input_type>[a-zA-Z0-9]+)")
def when_serialize(context: typing.Any, input_type: str):
    ser = Serializer()

    if input_type == "bool":
        ser.bool(context.input)
    elif input_type == "u8":
        ser.u8(context.input)
    elif input_type == "u16":
        ser.u16(context.input)
    elif input_type == "u32":
        ser.u32(context.input)
    elif input_type == "u64":
        ser.u64(context.input)
    elif input_type == "biguint":
        ser.biguint(context.input)
    elif input_type == "address":
        ser.struct(context.input)
    elif input_type == "bytes":
        ser.to_bytes(context.input)
    elif input_type == "string":
        ser.str(context.input)
    else:
        raise Exception("Unrecognized input type")

    context.output = ser.output()


@when(r"I serialize as sequence of (?P<input_type>[a-zA-Z0-9]+)")
def when_serialize_sequence(context: typing.Any, input_type: str):
    ser = Serializer()

    if input_type == "u64":
        ser.sequence(context.input, Serializer.u64)
    elif input_type == "string":
        ser.sequence(context.input, Serializer.str)
    else:
        raise Exception("Unrecognized input type")

    context.output = ser.output()


@when(r"I top encode as (?P<input_type>[a-zA-Z0-9]+)")
def when_top_encode(context: typing.Any, input_type: str):
    try:
        if input_type == "bool":
            context.output = TopEncoder.bool(context.input)
        elif input_type == "u64":
            context.output = TopEncoder.u64(context.input)
        elif input_type == "biguint":
            context.output = TopEncoder.biguint(context.input)
        elif input_type == "string":
            context.output = TopEncoder.str(context.input)
        elif input_type == "address":
            context.output = TopEncoder.struct(context.input)
        else:
            raise Exception("Unrecognized input type")
    except Exception as e:
        context.output = e


@when(r"I deserialize as (?P<input_type>[a-zA-Z0-9]+)")
def when_deserialize(context: typing.Any, input_type: str):
    des = Deserializer(context.input)

    try:
        if input_type == "bool":
            context.output = des.bool()
        elif input_type == "u8":
            context.output = des.u8()
        elif input_type == "u16":
            context.output = des.u16()
        elif input_type == "u32":
            context.output = des.u32()
        elif input_type == "u64":
            context.output = des.u64()
        elif input_type == "biguint":
            context.output = des.biguint()
        elif input_type == "address":
            context.output = Address.deserialize(des)
        elif input_type == "bytes":
            context.output = des.to_bytes()
        elif input_type == "string":
            context.output = des.str()
        else:
            raise Exception("Unrecognized input type")
    except Exception as e:
        context.output = e


@when(r"I top decode as (?P<input_type>[a-zA-Z0-9]+)")
def when_top_decode(context: typing.Any, input_type: str):
    try:
        if input_type == "bool":
            context.output = TopDecoder.bool(context.input)
        elif input_type == "u64":
            context.output = TopDecoder.u64(context.input)
        elif input_type == "biguint":
            context.output = TopDecoder.biguint(context.input)
        elif input_type == "string":
            context.output = TopDecoder.str(context.input)
        else:
            raise Exception("Unrecognized input type")
    except Exception as e:
        context.output = e


@then("the deserialization should fail")
def then_deserialization_failure(context: typing.Any):
    assert isinstance(context.output, Exception), "Expected failure, got " + str(
        context.output
    )


@then("the encoding should fail")
def then_encoding_failure(context: typing.Any):
    assert isinstance(context.output, Exception), "Expected failure, got " + str(
        context.output
    )
