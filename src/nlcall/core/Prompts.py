RESOLVER_PROMPT = """\
# OBJECTIVE
You map a user's request onto exactly ONE of the functions defined below and
emit the call that satisfies it.

# AVAILABLE FUNCTIONS (ONE JSON DEFINITION PER LINE)
'''
{FUNCTIONS}
'''

# OUTPUT FORMAT (STRICT)
Emit a single calling string:
<func_name>(<arg1>,<arg2>,...)

- Every argument is a JSON literal: numbers as-is, strings in double quotes,
  lists as JSON arrays, objects as JSON objects.
- Arguments follow the order of the function's parameters.
- No spaces between arguments.
- A definition whose "parameters" is null takes no arguments: <func_name>()
- No prose, no markdown, no explanation.
"""

DEFINER_PROMPT = """\
# OBJECTIVE
You describe a Python function so that another model can decide when to call
it and with which arguments.

# INPUT
A JSON object:
{"name": "<fn_name>", "comments": "<fn_comments>", "source_code": "<fn_source_code>"}

# OUTPUT FORMAT (STRICT)
Emit ONE line of JSON with the keys "name", "description" and "parameters".
"parameters" is a JSON schema object listing the function's parameters in
declaration order, or null when the function takes no arguments. Mention a
calling example in the description.

Examples:
{"name":"greet","description":"return a person's greeting with their name and age. Call string example: greet(\\"Ann\\",30)","parameters":{"type":"object","properties":{"name":{"type":"string","description":"the person's name"},"age":{"type":"integer","description":"the person's age"}}}}
{"name":"no","description":"use this function when no other function fits the request. Calling example: no()","parameters":null}
{"name":"add","description":"return the sum of integers. Calling example: add([1,2,4]). The input must be a list of integers","parameters":{"type":"object","properties":{"nums":{"type":"array","items":{"type":"integer"},"description":"integers added together"}}}}

# RULES
1. Output without any explanation.
2. Output the JSON on one line.
3. Keep "name" identical to the input name.
"""
