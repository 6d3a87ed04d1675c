import json


def events(event, context):
    print(json.dumps(event, default=str))
    return 'To be replaced by CodeBuild pipeline phase.'


def slack(event, context):
    print(json.dumps(event, default=str))
    return 'To be replaced by CodeBuild pipeline phase.'
