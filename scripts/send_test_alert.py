import sys
import requests

BASE_URL = 'http://127.0.0.1:8000'

# usage: send_test_alert.py USER_ID BOT_ID [SYMBOL] [QTY]
if len(sys.argv) < 3:
    print('Usage: send_test_alert.py USER_ID BOT_ID [SYMBOL] [QTY]')
    sys.exit(2)

user_id, bot_id = sys.argv[1], sys.argv[2]
alert = {'side': 'Buy'}
if len(sys.argv) > 3:
    alert['symbol'] = sys.argv[3]
if len(sys.argv) > 4:
    alert['quantity'] = sys.argv[4]

res = requests.post(f'{BASE_URL}/generateWebhook', json={'userId': user_id, 'botId': bot_id, 'expirationDays': 1})
print('generateWebhook:', res.status_code, res.text)
res.raise_for_status()
webhook_url = res.json()['webhookUrl']

res = requests.post(webhook_url, json=alert)
print('processAlert:', res.status_code, res.text)

res = requests.get(f'{BASE_URL}/trades', params={'userId': user_id, 'botId': bot_id, 'limit': 5})
print('latest trades:', res.json())
