"""
Backend adapters.

  local/  in-process simulators, log observer, dev server
  aws/    DynamoDB, S3, CloudWatch clients and the Lambda entrypoint
"""
