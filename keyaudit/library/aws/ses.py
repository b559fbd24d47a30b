import logging


class SESOperations:
    """ Class for SES operations """
    @staticmethod
    def send_text_email(ses_client, source, to_address, subject, body, charset="UTF-8"):
        """
        Send single recipient plain text email.

        :param ses_client: SES boto3 client
        :param source: sender email address (must be verified in SES)
        :param to_address: recipient email address
        :param subject: message subject
        :param body: message text
        :param charset: charset of subject and body

        :return: string with SES `MessageId`
        """
        logging.debug(f"Sending '{subject}' from {source} to {to_address}")
        response = ses_client.send_email(
            Source=source,
            Destination={
                'ToAddresses': [
                    to_address,
                ],
            },
            Message={
                'Subject': {
                    'Charset': charset,
                    'Data': subject,
                },
                'Body': {
                    'Text': {
                        'Charset': charset,
                        'Data': body,
                    },
                },
            },
        )
        return response['MessageId']
